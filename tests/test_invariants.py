from __future__ import annotations

import pytest

from ropelink.exceptions import NeverThrown
from ropelink.invariants import never


def test_never_raises_with_env_payload() -> None:
    with pytest.raises(NeverThrown) as excinfo:
        never("unreachable", command="rename")
    assert str(excinfo.value) == "unreachable"
    assert excinfo.value.env == {"command": "rename"}


def test_never_has_default_reason() -> None:
    with pytest.raises(NeverThrown, match="never\\(\\) marker reached"):
        never()
