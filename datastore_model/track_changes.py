#
# Copyright 2022 European Centre for Medium-Range Weather Forecasts (ECMWF)
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# In applying this licence, ECMWF does not waive the privileges and immunities
# granted to it by virtue of its status as an intergovernmental organisation nor
# does it submit to any jurisdiction.
#

import functools
import logging
from typing import List

from .attributes import Attribute, as_list
from .dirty_mixin import DirtyTrackingMixin
from .exceptions import TrackChangesError


class TrackedAttribute(Attribute):
    """A field whose setter marks it dirty when the assigned value differs from the stored one"""

    def __set__(self, instance, value):
        if value != self.__get__(instance, type(instance)):
            instance.mark_dirty(self.name)
        super().__set__(instance, value)


class TrackChangesMixin(DirtyTrackingMixin):
    """
    Decides whether a model needs to be written back to the datastore.

    Values submitted from an HTML form are strings, so a submitted '25.0' does not match
    a stored float of 25.0 and the attribute is reported as changed. Once the value has
    been coerced back to 25.0 the attribute is still dirty, yet nothing needs saving.
    values_changed() re-compares every dirty tracked attribute with its prior value to
    filter out these round trips:

        class Shape(Model):
            fields = ["area"]

        Shape.enable_change_tracking("area")

        shape = Shape(area=25.0)
        shape.assign_attributes({"area": "25.0"})
        coercion.format_property_value(shape, "area", "float")

        shape.values_changed()  # False
        shape.area_changed()    # True, area was assigned a different value
        shape.area_change()     # (25.0, 25.0)
    """

    __slots__ = ()

    _tracked_attributes = ()

    @classmethod
    def enable_change_tracking(cls, *attributes):
        """
        Enables change tracking for the given attributes.

        Each attribute gets a setter that marks it dirty unless the new value equals the
        stored one, plus <attr>_changed(), <attr>_was() and <attr>_change() helpers.
        A later call replaces the list returned by tracked_attributes().
        """
        attributes = list(dict.fromkeys(str(a) for a in attributes))
        for attr in attributes:
            setattr(cls, attr, TrackedAttribute(attr))
            setattr(cls, f"{attr}_changed", functools.partialmethod(DirtyTrackingMixin.attribute_changed, attr))
            setattr(cls, f"{attr}_was", functools.partialmethod(DirtyTrackingMixin.attribute_was, attr))
            setattr(cls, f"{attr}_change", functools.partialmethod(DirtyTrackingMixin.attribute_change, attr))

        cls._tracked_attributes = tuple(attributes)
        logging.debug("Change tracking enabled for {} on {}".format(attributes, cls.__name__))

    def tracked_attributes(self) -> List[str]:
        return list(self._tracked_attributes)

    @property
    def exclude_from_save(self) -> bool:
        value = getattr(self, "_exclude_from_save", None)
        return False if value is None else value

    @exclude_from_save.setter
    def exclude_from_save(self, value):
        self._exclude_from_save = value

    def marked_for_destruction(self) -> bool:
        return False

    def has_nested_attributes(self) -> bool:
        return False

    def reload(self) -> None:
        """Resets the tracked changes, current values become the new baseline"""
        self.clear_dirty()
        self.exclude_from_save = False

    def values_changed(self) -> bool:
        """
        Determines whether any tracked attribute really changed.

        NB: this also sets exclude_from_save to the negation of the result, on every call.

        A model marked for destruction always counts as changed. Otherwise the first dirty
        tracked attribute whose current value differs from its prior value decides; clean
        attributes are skipped without comparing values. Call this after any coercion of
        submitted values has happened, or coerced round trips are reported as changes.

        Raises:
            TrackChangesError: if the class was never configured with enable_change_tracking
        """
        tracked = self.tracked_attributes()
        if not tracked:
            raise TrackChangesError("Object has not been configured for change tracking.", model=self)

        changed = bool(self.marked_for_destruction())
        for attr in tracked:
            if changed:
                break
            if self.attribute_changed(attr):
                changed = getattr(self, attr) != self.attribute_was(attr)

        self.exclude_from_save = not changed
        logging.debug("{} values changed: {}".format(self.__class__.__name__, changed))
        return changed

    def remove_unmodified_children(self) -> None:
        """Drops nested children without real changes, then forgets empty nested attributes"""
        if not (self.tracked_attributes() and self.has_nested_attributes()):
            return

        for attr in self.nested_attributes:
            children = as_list(getattr(self, attr))
            with_changes = [child for child in children if child.values_changed()]
            setattr(self, attr, with_changes)
            if len(with_changes) != len(children):
                logging.info(
                    "Removed {} unmodified children from {}.{}".format(
                        len(children) - len(with_changes), self.__class__.__name__, attr
                    )
                )

        self.nested_attributes[:] = [attr for attr in self.nested_attributes if as_list(getattr(self, attr))]
