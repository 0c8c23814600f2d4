from __future__ import annotations

import pytest
from pydantic import ValidationError

from staffgate.core.auth import GatePolicy
from staffgate.core.config import Settings


def test_default_gate_policy_requires_profile() -> None:
    settings = Settings(_env_file=None)

    assert settings.gate_policy is GatePolicy.ROLE_AND_PROFILE


def test_gate_policy_is_read_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GATE_POLICY", "role_checked")

    assert Settings(_env_file=None).gate_policy is GatePolicy.ROLE_CHECKED


def test_unknown_gate_policy_fails_at_startup(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GATE_POLICY", "roles_maybe")

    with pytest.raises(ValidationError):
        Settings(_env_file=None)
