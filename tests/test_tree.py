import pytest

from lua4dec import Constants, Instruction, MalformedChunk, Node, OpCode, to_nodes


def op(opcode: OpCode, **operands: int) -> Instruction:
    return Instruction.encode(opcode, **operands)


def test_return_of_sum_builds_single_statement():
    forest = to_nodes([op(OpCode.PUSH_INT, s=5), op(OpCode.ADD_INT, s=3), op(OpCode.RETURN, u=1)])

    (statement,) = forest
    assert statement.op is OpCode.RETURN
    (addition,) = statement.children
    assert addition.op is OpCode.ADD_INT
    (literal,) = addition.children
    assert literal.op is OpCode.PUSH_INT
    assert literal.children == ()
    assert [statement.index, addition.index, literal.index] == [2, 1, 0]
    assert statement.instruction_count() == 3


def test_call_consumes_callee_and_arguments_most_recent_first():
    forest = to_nodes(
        [
            op(OpCode.GET_GLOBAL, u=0),
            op(OpCode.PUSH_STRING, u=1),
            op(OpCode.CALL, a=1, b=0),
        ]
    )

    (call,) = forest
    assert [child.op for child in call.children] == [OpCode.PUSH_STRING, OpCode.GET_GLOBAL]


def test_statements_are_returned_in_program_order():
    forest = to_nodes(
        [
            op(OpCode.PUSH_INT, s=1),
            op(OpCode.SET_GLOBAL, u=0),
            op(OpCode.PUSH_INT, s=2),
            op(OpCode.SET_GLOBAL, u=1),
            op(OpCode.END),
        ]
    )

    assert [(node.op, node.index) for node in forest] == [
        (OpCode.SET_GLOBAL, 1),
        (OpCode.SET_GLOBAL, 3),
        (OpCode.END, 4),
    ]


def test_forward_jump_nests_skipped_statements():
    forest = to_nodes(
        [
            op(OpCode.GET_GLOBAL, u=0),
            op(OpCode.PUSH_INT, s=1),
            op(OpCode.JUMP_EQUAL, s=2),
            op(OpCode.PUSH_NIL, u=0),
            op(OpCode.POP, u=0),
            op(OpCode.END),
        ]
    )

    assert [node.op for node in forest] == [OpCode.JUMP_EQUAL, OpCode.END]
    jump = forest[0]
    assert [child.op for child in jump.children] == [
        OpCode.PUSH_INT,
        OpCode.GET_GLOBAL,
        OpCode.PUSH_NIL,
        OpCode.POP,
    ]
    assert [child.index for child in jump.children[2:]] == [3, 4]


def test_jump_body_is_rebuilt_as_its_own_forest():
    forest = to_nodes(
        [
            op(OpCode.GET_GLOBAL, u=0),
            op(OpCode.JUMP_IF_FALSE, s=2),
            op(OpCode.PUSH_INT, s=7),
            op(OpCode.SET_GLOBAL, u=1),
            op(OpCode.END),
        ]
    )

    jump = forest[0]
    assert jump.op is OpCode.JUMP_IF_FALSE
    body = jump.children[1:]
    assert [node.op for node in body] == [OpCode.SET_GLOBAL]
    assert body[0].children[0].op is OpCode.PUSH_INT


def test_backward_jump_stays_a_leaf():
    forest = to_nodes([op(OpCode.PUSH_NIL, u=0), op(OpCode.JUMP, s=-2), op(OpCode.END)])

    assert forest[1].op is OpCode.JUMP
    assert forest[1].children == ()


def test_multi_value_producer_satisfies_several_pops():
    forest = to_nodes(
        [
            op(OpCode.GET_LOCAL, u=0),
            op(OpCode.PUSH_SELF, u=0),
            op(OpCode.CALL, a=1, b=0),
        ]
    )

    (call,) = forest
    (method,) = call.children
    assert method.op is OpCode.PUSH_SELF


def test_stack_underflow_is_detected():
    with pytest.raises(MalformedChunk, match="underflow") as excinfo:
        to_nodes([op(OpCode.PUSH_INT, s=1), op(OpCode.ADD)])

    assert excinfo.value.index == 1


def test_unconsumed_values_are_detected():
    with pytest.raises(MalformedChunk, match="left on the stack"):
        to_nodes([op(OpCode.PUSH_INT, s=1), op(OpCode.PUSH_INT, s=2), op(OpCode.END)])


def test_jump_past_the_block_is_malformed():
    with pytest.raises(MalformedChunk, match="jumps past"):
        to_nodes([op(OpCode.JUMP, s=3), op(OpCode.END)])


def test_closure_reference_is_checked_against_constants():
    with pytest.raises(MalformedChunk, match="missing function"):
        to_nodes([op(OpCode.CLOSURE, a=0, b=0), op(OpCode.SET_GLOBAL, u=0)], Constants())


def test_tree_building_is_pure():
    instructions = [
        op(OpCode.GET_GLOBAL, u=0),
        op(OpCode.PUSH_INT, s=1),
        op(OpCode.JUMP_LESS_THAN, s=2),
        op(OpCode.PUSH_INT, s=3),
        op(OpCode.SET_GLOBAL, u=0),
        op(OpCode.END),
    ]

    assert to_nodes(instructions) == to_nodes(list(instructions))


def test_describe_dumps_the_tree():
    (node,) = to_nodes([op(OpCode.PUSH_INT, s=5), op(OpCode.RETURN, u=1)])

    assert isinstance(node, Node)
    assert node.describe() == "[1] RETURN(1)\n  [0] PUSH_INT(5)"
