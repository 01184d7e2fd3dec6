"""
Sprint Link Resolution Module
Finds the sprint an issue belongs to from the differently-shaped sprint fields Jira returns.

A sprint field value is classified into one of four shapes, each with its own
extractor:

- ArrayOfRefs: a list of sprint objects, most recent last
- SingleRef: a single sprint object
- LegacyEncodedString: the old "...Sprint@1a2b[id=123,state=ACTIVE,...]" text form
- Absent: anything else
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from jira_mirror.utils.helpers import to_int

_LEGACY_ID_RE = re.compile(r'(?:^|[\[,\s])id=([^,\]]*)')


@dataclass(frozen=True)
class ArrayOfRefs:
    refs: List[Any]


@dataclass(frozen=True)
class SingleRef:
    ref: Dict[str, Any]


@dataclass(frozen=True)
class LegacyEncodedString:
    text: str


@dataclass(frozen=True)
class Absent:
    pass


SprintReference = Union[ArrayOfRefs, SingleRef, LegacyEncodedString, Absent]


def classify_sprint_field(value: Any) -> SprintReference:
    """Classify a raw sprint field value by shape."""
    if isinstance(value, list) and value:
        return ArrayOfRefs(value)
    if isinstance(value, dict):
        return SingleRef(value)
    if isinstance(value, str) and value.strip():
        return LegacyEncodedString(value)
    return Absent()


def _from_array(reference: ArrayOfRefs) -> Optional[int]:
    latest = classify_sprint_field(reference.refs[-1])
    # Nested arrays are not a shape Jira produces
    if isinstance(latest, ArrayOfRefs):
        return None
    return extract_sprint_id(latest)


def _from_single(reference: SingleRef) -> Optional[int]:
    return to_int(reference.ref.get('id'))


def _from_legacy(reference: LegacyEncodedString) -> Optional[int]:
    match = _LEGACY_ID_RE.search(reference.text)
    if not match:
        return None
    return to_int(match.group(1).strip())


def _from_absent(reference: Absent) -> Optional[int]:
    return None


_EXTRACTORS: Dict[type, Callable[[Any], Optional[int]]] = {
    ArrayOfRefs: _from_array,
    SingleRef: _from_single,
    LegacyEncodedString: _from_legacy,
    Absent: _from_absent,
}


def extract_sprint_id(reference: SprintReference) -> Optional[int]:
    """Extract the sprint id from a classified reference."""
    return _EXTRACTORS[type(reference)](reference)


def resolve_sprint_id(fields: Dict[str, Any], field_names: Iterable[str]) -> Optional[int]:
    """
    Find the sprint id in an issue's fields.

    Args:
        fields: The issue's "fields" object
        field_names: Candidate field names, searched in order

    Returns:
        The first parseable sprint id, or None
    """
    for name in field_names:
        sprint_id = extract_sprint_id(classify_sprint_field(fields.get(name)))
        if sprint_id is not None:
            return sprint_id
    return None
