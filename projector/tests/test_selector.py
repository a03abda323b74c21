"""
Tests for label selector evaluation.
"""

import pytest

from projector.errors import SelectorError
from projector.models import LabelSelectorSpec
from projector.selector import LabelSelector


def _selector(obj):
    return LabelSelector.from_model(LabelSelectorSpec.model_validate(obj))


def test_match_labels():
    selector = _selector({"matchLabels": {"app": "web", "tier": "frontend"}})

    assert selector.matches({"app": "web", "tier": "frontend", "extra": "x"})
    assert not selector.matches({"app": "web"})


def test_match_expressions():
    selector = _selector({"matchExpressions": [
        {"key": "env", "operator": "In", "values": ["prod", "staging"]},
        {"key": "canary", "operator": "DoesNotExist"},
        {"key": "team", "operator": "NotIn", "values": ["legacy"]},
        {"key": "app", "operator": "Exists"},
    ]})

    assert selector.matches({"env": "prod", "app": "x"})
    assert selector.matches({"env": "staging", "app": "x", "team": "core"})
    assert not selector.matches({"env": "dev", "app": "x"})
    assert not selector.matches({"env": "prod", "app": "x", "canary": "true"})
    assert not selector.matches({"env": "prod", "app": "x", "team": "legacy"})
    assert not selector.matches({"env": "prod"})


def test_empty_selector_matches_everything():
    assert _selector({}).matches({"any": "thing"})
    assert _selector({}).matches(None)
    assert LabelSelector.from_model(None).matches({})


@pytest.mark.parametrize("obj", [
    {"matchExpressions": [{"key": "app", "operator": "Bogus"}]},
    {"matchExpressions": [{"key": "app", "operator": "In"}]},
    {"matchExpressions": [{"key": "app", "operator": "Exists", "values": ["x"]}]},
    {"matchLabels": {"bad key!": "x"}},
    {"matchLabels": {"app": "-invalid-"}},
    {"matchLabels": {"UPPER.example.com/app": "x"}},
])
def test_malformed_selector(obj):
    with pytest.raises(SelectorError):
        _selector(obj)


def test_prefixed_key():
    selector = _selector({"matchLabels": {"app.kubernetes.io/name": "web"}})

    assert selector.matches({"app.kubernetes.io/name": "web"})
