"""Gate policy — which stages block the gate and which may be skipped.

Defaults mirror the reusable workflow: lint, typecheck and build are core;
build, security, sonar and docker can be switched off with skip flags.
A policy can also be loaded from a YAML file:

    core_stages: [lint, typecheck, build]
    skippable_stages: [build, security, sonar, docker]
    container_dependencies: [lint, typecheck, build]
"""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from pipeline_report.stages import ALL_STAGES, BUILD, DOCKER, LINT, SECURITY, SONAR, TYPECHECK


class PolicyError(Exception):
    """Raised when a policy file cannot be loaded."""


# skip flag -> stage it switches off
SKIP_FLAG_STAGES: dict[str, str] = {
    "skip_sonar": SONAR,
    "skip_security": SECURITY,
    "skip_docker": DOCKER,
    "skip_build": BUILD,
}


class SkipFlags(BaseModel):
    model_config = ConfigDict(frozen=True)

    skip_sonar: bool = False
    skip_security: bool = False
    skip_docker: bool = False
    skip_build: bool = False

    @property
    def skipped_stages(self) -> frozenset[str]:
        return frozenset(
            stage for flag, stage in SKIP_FLAG_STAGES.items() if getattr(self, flag)
        )


class GatePolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    core_stages: tuple[str, ...] = (LINT, TYPECHECK, BUILD)
    skippable_stages: frozenset[str] = frozenset({BUILD, SECURITY, SONAR, DOCKER})
    container_dependencies: tuple[str, ...] = (LINT, TYPECHECK, BUILD)
    skip: SkipFlags = Field(default_factory=SkipFlags)

    @field_validator("core_stages", "skippable_stages", "container_dependencies")
    @classmethod
    def _known_stages(cls, value):
        unknown = sorted(set(value) - set(ALL_STAGES))
        if unknown:
            raise ValueError(f"unknown stage(s): {', '.join(unknown)}")
        return value

    def is_core(self, stage: str) -> bool:
        return stage in self.core_stages

    def is_skip_flagged(self, stage: str) -> bool:
        return stage in self.skip.skipped_stages

    def is_validly_skipped(self, stage: str) -> bool:
        """A skip flag only counts when the stage is configured as skippable."""
        return self.is_skip_flagged(stage) and stage in self.skippable_stages

    def informational_stages(self) -> tuple[str, ...]:
        return tuple(s for s in ALL_STAGES if s not in self.core_stages)

    def container_dependencies_for_run(self) -> tuple[str, ...]:
        return tuple(
            s for s in self.container_dependencies if not self.is_validly_skipped(s)
        )

    def with_skip(self, skip: SkipFlags) -> GatePolicy:
        return self.model_copy(update={"skip": skip})


def load_policy(path: Path | str | None = None, skip: SkipFlags | None = None) -> GatePolicy:
    """Load a GatePolicy from YAML, falling back to the defaults when *path* is None."""
    skip = skip or SkipFlags()
    if path is None:
        return GatePolicy(skip=skip)

    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except OSError as e:
        raise PolicyError(f"Cannot read policy file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise PolicyError(f"Policy file {path} is not valid YAML: {e}") from e

    if not isinstance(raw, dict):
        raise PolicyError(f"Policy file {path} must contain a mapping")

    try:
        return GatePolicy(**raw, skip=skip)
    except (ValidationError, TypeError) as e:
        raise PolicyError(f"Invalid policy in {path}: {e}") from e
