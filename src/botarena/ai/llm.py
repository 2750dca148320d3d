"""Proposer backed by the Anthropic Messages API with forced tool use."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import anthropic

from botarena.config import get_llm_api_key, get_llm_base_url, get_llm_model
from botarena.modules.arena.models import (
    Proposal,
    ProposalHistoryEntry,
    RoundMetrics,
    WinConditions,
)
from botarena.modules.arena.scoring import DEFAULT_WIN_CONDITIONS
from botarena.modules.detector import Policy
from botarena.modules.traffic import AttackProfile

from .prompts import (
    BLUE_SYSTEM_PROMPT,
    PROPOSAL_TOOL_NAME,
    RED_SYSTEM_PROMPT,
    blue_prompt,
    proposal_tool,
    red_prompt,
)

logger = logging.getLogger(__name__)


class LLMProposer:
    """Asks Claude for red and blue proposals through the ``submit_proposal`` tool."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        config_dir: Path | None = None,
        conditions: WinConditions = DEFAULT_WIN_CONDITIONS,
        max_tokens: int = 1024,
        max_retries: int = 2,
    ):
        self.api_key = api_key or get_llm_api_key(config_dir)
        if not self.api_key:
            raise RuntimeError(
                "No LLM API key configured. Set BOTARENA_LLM_API_KEY or ANTHROPIC_API_KEY, "
                "or run with --no-agents."
            )
        self.model = model or get_llm_model(config_dir)
        self.max_tokens = max_tokens
        self.conditions = conditions
        kwargs: dict[str, Any] = {"api_key": self.api_key, "max_retries": max_retries}
        base = base_url or get_llm_base_url(config_dir)
        if base:
            kwargs["base_url"] = base
        self.client = anthropic.AsyncAnthropic(**kwargs)

    async def close(self) -> None:
        await self.client.close()

    async def _propose(self, system_prompt: str, prompt: str, subject: str) -> Proposal:
        response = await self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            system=system_prompt,
            tools=[proposal_tool(subject)],
            tool_choice={"type": "tool", "name": PROPOSAL_TOOL_NAME},
            messages=[{"role": "user", "content": prompt}],
        )
        for block in response.content:
            if block.type == "tool_use" and block.name == PROPOSAL_TOOL_NAME:
                payload = block.input if isinstance(block.input, dict) else {}
                changes = payload.get("changes")
                return Proposal(
                    changes=dict(changes) if isinstance(changes, dict) else {},
                    reasoning=str(payload.get("reasoning") or "No reasoning provided"),
                )
        logger.warning("LLM response for %s had no %s call", subject, PROPOSAL_TOOL_NAME)
        return Proposal(changes={}, reasoning="No tool use in response")

    async def propose_attack(
        self,
        metrics: RoundMetrics,
        profile: AttackProfile,
        history: Sequence[ProposalHistoryEntry],
    ) -> Proposal:
        return await self._propose(
            RED_SYSTEM_PROMPT, red_prompt(metrics, profile, history), "attack profile"
        )

    async def propose_policy(
        self,
        metrics: RoundMetrics,
        policy: Policy,
        history: Sequence[ProposalHistoryEntry],
    ) -> Proposal:
        system = BLUE_SYSTEM_PROMPT.format(
            fpr=self.conditions.fpr_threshold,
            human=self.conditions.human_success_threshold,
        )
        prompt = blue_prompt(metrics, policy, history)
        return await self._propose(system, prompt, "detection policy")
