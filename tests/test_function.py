import pytest

from lua4dec import (
    ChunkError,
    ChunkReader,
    Instruction,
    InvalidOpcode,
    MalformedChunk,
    OpCode,
    load_chunk,
    read_header,
)

from chunk_builder import FunctionSpec, Layout, encode_chunk


LITTLE_32 = Layout()
BIG_16 = Layout(
    endianness=0,
    sizeof_int=2,
    sizeof_size_t=2,
    sizeof_instruction=2,
    size_instruction=16,
    size_op=6,
    size_b=4,
    sizeof_number=4,
)


def _return_sum(layout: Layout) -> FunctionSpec:
    return FunctionSpec(
        code=[
            layout.op(OpCode.PUSH_INT, s=5),
            layout.op(OpCode.ADD_INT, s=3),
            layout.op(OpCode.RETURN, u=1),
            layout.op(OpCode.END),
        ],
        lines=[1, 1, 1, 1],
    )


def test_chunk_parses_every_section():
    layout = LITTLE_32
    nested = FunctionSpec(
        source="=test",
        line=3,
        param_count=2,
        is_vararg=True,
        locals=[("a", 0, 2), ("b", 0, 2)],
        code=[layout.op(OpCode.END)],
    )
    spec = FunctionSpec(
        source="@script.lua",
        line=0,
        max_stack_size=6,
        locals=[("x", 1, 4)],
        lines=[1, 2, 2, 3],
        strings=["print", "", "hi"],
        numbers=[1.5, -2.25],
        functions=[nested],
        code=[
            layout.op(OpCode.GET_GLOBAL, u=0),
            layout.op(OpCode.PUSH_STRING, u=2),
            layout.op(OpCode.CALL, a=1, b=0),
            layout.op(OpCode.END),
        ],
    )

    chunk = load_chunk(encode_chunk(layout, spec))
    function = chunk.function

    assert function.source == "@script.lua"
    assert function.max_stack_size == 6
    assert [(local.name, local.start, local.end) for local in function.locals] == [("x", 1, 4)]
    assert function.lines == [1, 2, 2, 3]
    assert function.constants.strings == ["print", "", "hi"]
    assert function.constants.numbers == [1.5, -2.25]
    assert [instruction.op for instruction in function.code] == [
        OpCode.GET_GLOBAL,
        OpCode.PUSH_STRING,
        OpCode.CALL,
        OpCode.END,
    ]

    (child,) = function.constants.functions
    assert child.line == 3
    assert child.param_count == 2
    assert child.is_vararg
    assert [local.name for local in child.locals] == ["a", "b"]
    assert list(function.iter_functions()) == [function, child]


def test_every_function_ends_with_end():
    chunk = load_chunk(encode_chunk(LITTLE_32, _return_sum(LITTLE_32)))

    for function in chunk.function.iter_functions():
        assert function.code[-1].op is OpCode.END


def test_missing_end_is_malformed():
    layout = LITTLE_32
    spec = FunctionSpec(code=[layout.op(OpCode.PUSH_INT, s=1), layout.op(OpCode.RETURN, u=1)])

    with pytest.raises(MalformedChunk, match="instead of END") as excinfo:
        load_chunk(encode_chunk(layout, spec))

    assert excinfo.value.index == 1


def test_nested_function_without_end_is_malformed():
    layout = LITTLE_32
    nested = FunctionSpec(code=[layout.op(OpCode.PUSH_NIL, u=1)])
    spec = FunctionSpec(functions=[nested], code=[layout.op(OpCode.END)])

    with pytest.raises(MalformedChunk, match="instead of END"):
        load_chunk(encode_chunk(layout, spec))


def test_empty_code_is_malformed():
    with pytest.raises(MalformedChunk, match="no instructions"):
        load_chunk(encode_chunk(LITTLE_32, FunctionSpec(code=[])))


def test_trailing_bytes_are_rejected():
    data = encode_chunk(LITTLE_32, _return_sum(LITTLE_32)) + b"\x00"

    with pytest.raises(MalformedChunk, match="trailing"):
        load_chunk(data)


def test_invalid_opcode_reports_instruction_index():
    layout = LITTLE_32
    spec = FunctionSpec(code=[layout.op(OpCode.END), Instruction((1 << 6) | 60), layout.op(OpCode.END)])

    with pytest.raises(InvalidOpcode) as excinfo:
        load_chunk(encode_chunk(layout, spec))

    assert excinfo.value.index == 1
    assert excinfo.value.opcode == 60
    assert excinfo.value.offset is not None


def test_truncated_body_is_malformed():
    data = encode_chunk(LITTLE_32, _return_sum(LITTLE_32))

    with pytest.raises(MalformedChunk, match="unexpected end"):
        load_chunk(data[:-3])


@pytest.mark.parametrize("layout", [LITTLE_32, BIG_16])
def test_each_layout_decodes_under_its_own_header(layout):
    chunk = load_chunk(encode_chunk(layout, _return_sum(layout)))

    assert chunk.header.sizeof_instruction == layout.sizeof_instruction
    assert [instruction.format() for instruction in chunk.function.code] == [
        "PUSH_INT(5)",
        "ADD_INT(3)",
        "RETURN(1)",
        "END()",
    ]


def test_cross_fed_chunks_fail_instead_of_misreading():
    little = encode_chunk(LITTLE_32, _return_sum(LITTLE_32))
    big = encode_chunk(BIG_16, _return_sum(BIG_16))
    little_header = LITTLE_32.header()
    big_header = BIG_16.header()

    with pytest.raises(ChunkError):
        load_chunk(big_header + little[len(little_header):])
    with pytest.raises(ChunkError):
        load_chunk(little_header + big[len(big_header):])


def test_cross_fed_instruction_words_raise_invalid_opcode():
    # GETGLOBAL 200 as a little-endian 32-bit word; its second byte lands in
    # the opcode field of a big-endian 16-bit word
    word = LITTLE_32.word(LITTLE_32.op(OpCode.GET_GLOBAL, u=200))
    header = read_header(BIG_16.header())
    reader = ChunkReader(word, header)

    decoded = Instruction(reader.read_instruction_word(), header.size_instruction, header.size_op, header.size_b)

    with pytest.raises(InvalidOpcode):
        decoded.op
