"""Unit tests for the instruction worklist."""

import pytest

from aliasflow.alias.worklist import Worklist


class TestWorklist:
    """FIFO order with duplicate suppression."""

    def test_fifo_order(self, copy_program):
        insts = [copy_program.x, copy_program.p, copy_program.store]
        worklist = Worklist(insts)
        assert [worklist.pop() for _ in range(3)] == insts
        assert worklist.empty()

    def test_pending_instruction_is_not_queued_twice(self, copy_program):
        worklist = Worklist([copy_program.x])
        assert not worklist.push(copy_program.x)
        assert len(worklist) == 1
        assert worklist.pushed == 1

    def test_popped_instruction_can_be_queued_again(self, copy_program):
        worklist = Worklist([copy_program.x])
        worklist.pop()
        assert worklist.push(copy_program.x)
        assert not worklist.push(copy_program.x)
        assert len(worklist) == 1

    def test_empty_worklist(self):
        worklist = Worklist()
        assert worklist.empty()
        assert len(worklist) == 0
        with pytest.raises(IndexError):
            worklist.pop()


if __name__ == "__main__":
    pytest.main([__file__])
