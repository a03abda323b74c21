"""
Kubernetes label selector evaluation.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

from .errors import SelectorError
from .models import LabelSelectorSpec

_NAME_RE = re.compile(r"^([A-Za-z0-9]([-A-Za-z0-9_.]*[A-Za-z0-9])?)$")
_DNS1123_SUBDOMAIN_RE = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*$")

OP_IN = "In"
OP_NOT_IN = "NotIn"
OP_EXISTS = "Exists"
OP_DOES_NOT_EXIST = "DoesNotExist"


def validate_label_key(key: str) -> None:
    prefix, _, name = key.rpartition("/")
    if "/" in key and (not prefix or len(prefix) > 253 or not _DNS1123_SUBDOMAIN_RE.match(prefix)):
        raise SelectorError(f"invalid label key prefix: {key!r}")
    if not name or len(name) > 63 or not _NAME_RE.match(name):
        raise SelectorError(f"invalid label key: {key!r}")


def validate_label_value(value: str) -> None:
    if value == "":
        return
    if len(value) > 63 or not _NAME_RE.match(value):
        raise SelectorError(f"invalid label value: {value!r}")


@dataclass(frozen=True)
class Requirement:
    key: str
    operator: str
    values: Tuple[str, ...] = ()

    def matches(self, labels: Mapping[str, str]) -> bool:
        if self.operator == OP_IN:
            return self.key in labels and labels[self.key] in self.values
        if self.operator == OP_NOT_IN:
            return self.key not in labels or labels[self.key] not in self.values
        if self.operator == OP_EXISTS:
            return self.key in labels
        # OP_DOES_NOT_EXIST
        return self.key not in labels


@dataclass(frozen=True)
class LabelSelector:
    """
    Validated label selector.

    All requirements must match (logical AND). A selector with no
    requirements matches every label set.
    """
    requirements: Tuple[Requirement, ...] = field(default_factory=tuple)

    @classmethod
    def from_model(cls, selector: Optional[LabelSelectorSpec]) -> "LabelSelector":
        """
        Build a selector from its API form.

        Raises:
            SelectorError: If a key, value or operator is invalid
        """
        if selector is None:
            return cls()
        requirements: List[Requirement] = []
        for key in sorted(selector.match_labels):
            value = selector.match_labels[key]
            validate_label_key(key)
            validate_label_value(value)
            requirements.append(Requirement(key=key, operator=OP_IN, values=(value,)))
        for expr in selector.match_expressions:
            validate_label_key(expr.key)
            if expr.operator in (OP_IN, OP_NOT_IN):
                if not expr.values:
                    raise SelectorError(f"values must be non-empty for operator {expr.operator}")
                for value in expr.values:
                    validate_label_value(value)
            elif expr.operator in (OP_EXISTS, OP_DOES_NOT_EXIST):
                if expr.values:
                    raise SelectorError(f"values must be empty for operator {expr.operator}")
            else:
                raise SelectorError(f"{expr.operator!r} is not a valid label selector operator")
            requirements.append(Requirement(key=expr.key, operator=expr.operator, values=tuple(expr.values)))
        return cls(requirements=tuple(requirements))

    def matches(self, labels: Optional[Dict[str, str]]) -> bool:
        labels = labels or {}
        return all(r.matches(labels) for r in self.requirements)
