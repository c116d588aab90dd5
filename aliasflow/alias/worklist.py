"""FIFO worklist of instructions pending (re-)analysis."""

from collections import deque
from typing import Iterable, Optional, Set

from aliasflow.ir.models import Instruction


class Worklist:
    """Queue of instructions; an instruction already pending is not queued twice."""

    def __init__(self, instructions: Optional[Iterable[Instruction]] = None):
        self._queue = deque()
        self._pending: Set[Instruction] = set()
        self.pushed = 0
        for inst in instructions or []:
            self.push(inst)

    def push(self, inst: Instruction) -> bool:
        """Queue ``inst``; returns False if it was already pending."""
        if inst in self._pending:
            return False
        self._pending.add(inst)
        self._queue.append(inst)
        self.pushed += 1
        return True

    def pop(self) -> Instruction:
        inst = self._queue.popleft()
        self._pending.discard(inst)
        return inst

    def empty(self) -> bool:
        return not self._queue

    def __len__(self) -> int:
        return len(self._queue)
