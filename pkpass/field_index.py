"""
Key-addressed access to the fields of a built pass.

Field keys are unique across all groups of a pass, so a key maps to exactly one
(group, position) locator. The ordered group lists stay the source of truth for
serialization; the index only points into them.
"""

import dataclasses
import logging
from typing import Dict, Optional, Tuple

from .exceptions import KeyNotFoundError, ValidationError
from .models import Field, FieldValue, Pass
from .validation import field_problems

logger = logging.getLogger(__name__)


class FieldIndex:
    """Locator cache over one Pass.

    Built once in O(n); lookups are O(1). If a group list was swapped or
    resized behind the index's back, or a lookup misses, the index is
    rebuilt once before giving up.
    """

    def __init__(self, pass_obj: Pass):
        self._pass = pass_obj
        self._locators: Dict[str, Tuple[str, int]] = {}
        self._layout: Tuple[Tuple[int, int], ...] = ()
        self._rebuild()

    def _current_layout(self) -> Tuple[Tuple[int, int], ...]:
        return tuple((id(group_fields), len(group_fields))
                     for group_fields in self._pass.field_groups().values())

    def _rebuild(self):
        self._locators = {
            item.key: (group, position)
            for group, position, item in self._pass.iter_fields()
        }
        self._layout = self._current_layout()
        logger.debug(f"Indexed {len(self._locators)} fields of pass {self._pass.serial_number}")

    def _resolve(self, key: str) -> Optional[Tuple[str, Field]]:
        locator = self._locators.get(key)
        if locator is None:
            return None
        group, position = locator
        group_fields = self._pass.field_groups()[group]
        if position < len(group_fields) and group_fields[position].key == key:
            return group, group_fields[position]
        return None

    def _find(self, key: str) -> Optional[Tuple[str, Field]]:
        if self._layout != self._current_layout():
            self._rebuild()
        found = self._resolve(key)
        if found is None:
            # Fields moved or were swapped in place without the group sizes changing
            self._rebuild()
            found = self._resolve(key)
        return found

    def __contains__(self, key: str) -> bool:
        return self._find(key) is not None

    def __len__(self) -> int:
        return len(self._locators)

    def get_value(self, key: str) -> Optional[FieldValue]:
        """Current value of the field with ``key``, or None if no field has it"""
        found = self._find(key)
        if found is None:
            return None
        return found[1].value

    def set_value(self, key: str, value: FieldValue) -> None:
        """Replace the value of the field with ``key`` in place.

        The field keeps its position in its group. Raises KeyNotFoundError if
        no field carries ``key`` and ValidationError if ``value`` is not a
        valid value for that field.
        """
        found = self._find(key)
        if found is None:
            raise KeyNotFoundError(key)
        group, item = found

        problems = field_problems(dataclasses.replace(item, value=value), group)
        if problems:
            raise ValidationError(problems)
        item.value = value


def index_for(pass_obj: Pass) -> FieldIndex:
    """The FieldIndex cached on ``pass_obj``, built on first use"""
    if pass_obj._field_index is None:
        pass_obj._field_index = FieldIndex(pass_obj)
    return pass_obj._field_index


def get_value(pass_obj: Pass, key: str) -> Optional[FieldValue]:
    return index_for(pass_obj).get_value(key)


def set_value(pass_obj: Pass, key: str, value: FieldValue) -> None:
    index_for(pass_obj).set_value(key, value)
