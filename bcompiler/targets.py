"""Compilation targets and their command-line names."""

from __future__ import annotations

from enum import Enum


class Target(Enum):
    """Code generation targets; each value is the target's command-line name."""

    FASM_X86_64_LINUX = "fasm-x86_64-linux"
    GAS_AARCH64_LINUX = "gas-aarch64-linux"
    HTML_JS = "html-js"
    IR = "ir"


TARGET_NAMES: tuple[tuple[str, Target], ...] = tuple(
    (target.value, target) for target in Target
)
"""Every target name paired with its target, in listing order."""


def name_of_target(target: Target) -> str | None:
    """The command-line name of ``target``, or None if it has none."""
    for name, candidate in TARGET_NAMES:
        if candidate is target:
            return name
    return None


def target_by_name(name: str) -> Target | None:
    """The target called ``name``, or None if there is no such target."""
    for candidate_name, target in TARGET_NAMES:
        if candidate_name == name:
            return target
    return None