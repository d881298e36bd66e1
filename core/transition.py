"""
Transition bookkeeping for the DSC Protocol.

A transition is one externally visible engine operation. It either commits all
of its effects or none of them:

1. Ledger mutations are applied immediately and an undo step is recorded for
   each one.
2. Solvency checks run against the mutated ledgers.
3. External interactions (token pulls, burns, mints, payouts) are deferred and
   executed only at commit, ordered by stage: pulls first, payouts last.

If any step fails, interactions that already ran are compensated in reverse
order and every ledger mutation is undone, then the error propagates.

Transitions are serialized by a single lock. Starting a transition while the
same thread is already inside one (for example from a token callback) is
rejected.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, List, Optional

from dsc_errors import ReentrantCall

logger = logging.getLogger(__name__)


class Stage(IntEnum):
    """
    Execution order of deferred interactions at commit.

    Mints and payouts only ever come last in a transition, so nothing after
    them can fail and they never need compensating.
    """
    PULL = 0  # Take tokens from a user into custody
    BURN = 1  # Destroy DSC held in custody
    MINT = 2  # Issue DSC to a user
    PUSH = 3  # Pay collateral out of custody


@dataclass
class Interaction:
    """A deferred call into an external collaborator."""
    stage: Stage
    description: str
    action: Callable[[], None]
    compensate: Optional[Callable[[], None]] = None


class Journal:
    """
    Undo log and interaction queue for a single transition.
    """

    def __init__(self):
        self._undo = []
        self._interactions: List[Interaction] = []
        self.events = []

    def record(self, undo, *args):
        """Registers the inverse of a ledger mutation that was just applied."""
        self._undo.append((undo, args))

    def defer(self, stage, description, action, compensate=None):
        self._interactions.append(Interaction(stage, description, action, compensate))

    def emit(self, event):
        """Queues an event, published only if the transition commits."""
        self.events.append(event)

    def commit(self):
        """
        Executes the deferred interactions in stage order.

        On failure the interactions that already completed are compensated in
        reverse order before the error is re-raised.
        """
        completed = []
        for interaction in sorted(self._interactions, key=lambda i: i.stage):
            try:
                interaction.action()
            except Exception:
                self._compensate(completed)
                raise
            completed.append(interaction)

    def rollback(self):
        """Reverts every recorded ledger mutation, newest first."""
        while self._undo:
            undo, args = self._undo.pop()
            undo(*args)
        self.events.clear()

    def _compensate(self, completed):
        for interaction in reversed(completed):
            if interaction.compensate is None:
                continue
            logger.debug("compensating %s", interaction.description)
            try:
                interaction.compensate()
            except Exception:
                logger.exception("Failed to compensate %s", interaction.description)
                raise


class TransitionGuard:
    """
    Serializes transitions and rejects reentrant ones.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._owner = None
        self.active = None

    @contextmanager
    def enter(self, name):
        if self._owner == threading.get_ident():
            raise ReentrantCall(f"{name} called while {self.active} is in progress")

        with self._lock:
            self._owner = threading.get_ident()
            self.active = name
            try:
                yield
            finally:
                self._owner = None
                self.active = None
