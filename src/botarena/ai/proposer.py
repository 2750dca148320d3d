"""Strategy interface for the agents that propose config changes."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from botarena.modules.arena.models import Proposal, ProposalHistoryEntry, RoundMetrics
from botarena.modules.detector import Policy
from botarena.modules.traffic import AttackProfile


class Proposer(Protocol):
    """Produces a partial config delta for one side given the last round.

    Returning None means the side sits this round out.
    """

    async def propose_attack(
        self,
        metrics: RoundMetrics,
        profile: AttackProfile,
        history: Sequence[ProposalHistoryEntry],
    ) -> Proposal | None: ...

    async def propose_policy(
        self,
        metrics: RoundMetrics,
        policy: Policy,
        history: Sequence[ProposalHistoryEntry],
    ) -> Proposal | None: ...

    async def close(self) -> None: ...


class NullProposer:
    """Absent agent; selected when agents are disabled."""

    async def propose_attack(
        self,
        metrics: RoundMetrics,
        profile: AttackProfile,
        history: Sequence[ProposalHistoryEntry],
    ) -> Proposal | None:
        return None

    async def propose_policy(
        self,
        metrics: RoundMetrics,
        policy: Policy,
        history: Sequence[ProposalHistoryEntry],
    ) -> Proposal | None:
        return None

    async def close(self) -> None:
        pass
