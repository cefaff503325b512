"""
agent_trace.py — Lightweight audit log for question compositions
================================================================
Every ``compose`` call emits one AgentStep per stage (field detection,
tier 1, tier 2, tier 3, and the legacy fallback when it runs).  The steps
are collected into a RunTrace that is attached to the AssembledSet as
``assembled.trace``.

Data model
----------
  AgentStep      One stage's contribution: timing, status, decisions, warnings.
  RunTrace       Full trace for a single composition; ordered list of AgentSteps.

Key fields
----------
  AgentStep.status          "success" | "short" | "skipped" | "failed"
  AgentStep.duration_ms     Wall-clock milliseconds for that stage
  AgentStep.decisions       Human-readable list of choices the stage made
  AgentStep.warnings        Recovered failures (store down, provider error, …)
  AgentStep.detail          Arbitrary extra dict, e.g. per-difficulty counts
  RunTrace.mode             "live" | "mock"
  RunTrace.total_ms         End-to-end composition wall time
"""

from __future__ import annotations

import time
import uuid
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Iterator, Optional


@dataclass
class AgentStep:
    """One stage's contribution inside a composition run."""
    agent_id:       str
    agent_name:     str
    icon:           str
    start_ms:       float            # ms relative to run start
    duration_ms:    float = 0.0
    status:         str = "success"
    input_summary:  str = ""
    output_summary: str = ""
    decisions:      list[str] = field(default_factory=list)
    warnings:       list[str] = field(default_factory=list)
    detail:         dict[str, Any] = field(default_factory=dict)


@dataclass
class RunTrace:
    """Full trace for a single composition."""
    run_id:      str
    study_field: str
    requested:   int
    timestamp:   str
    mode:        str
    total_ms:    float = 0.0
    steps:       list[AgentStep] = field(default_factory=list)
    _t0:         float = field(default=0.0, repr=False, compare=False)

    @classmethod
    def start(cls, study_field: str, requested: int, mode: str) -> "RunTrace":
        return cls(
            run_id      = uuid.uuid4().hex[:12],
            study_field = study_field,
            requested   = requested,
            timestamp   = datetime.now().isoformat(timespec="seconds"),
            mode        = mode,
            _t0         = time.perf_counter(),
        )

    def _elapsed_ms(self) -> float:
        return (time.perf_counter() - self._t0) * 1000

    def append(self, step: AgentStep) -> None:
        self.steps.append(step)

    @contextmanager
    def step(self, agent_id: str, agent_name: str, icon: str = "•",
             input_summary: str = "") -> Iterator[AgentStep]:
        """Time a stage and append it, even when the stage raises."""
        s = AgentStep(
            agent_id      = agent_id,
            agent_name    = agent_name,
            icon          = icon,
            start_ms      = round(self._elapsed_ms(), 2),
            input_summary = input_summary,
        )
        began = time.perf_counter()
        try:
            yield s
        except Exception as exc:
            s.status = "failed"
            s.warnings.append(f"{type(exc).__name__}: {exc}")
            raise
        finally:
            s.duration_ms = round((time.perf_counter() - began) * 1000, 2)
            self.append(s)

    def finish(self) -> "RunTrace":
        self.total_ms = round(self._elapsed_ms(), 2)
        return self

    def get_step(self, agent_id: str) -> Optional[AgentStep]:
        return next((s for s in self.steps if s.agent_id == agent_id), None)

    @property
    def warnings(self) -> list[str]:
        return [w for s in self.steps for w in s.warnings]

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data.pop("_t0", None)
        return data
