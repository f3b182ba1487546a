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

import copy


class DirtyTrackingMixin:
    """Records, per attribute, the value it had before the current round of changes.

    Hosts either declare a ``_dirty_fields`` slot or carry a ``__dict__``.
    """

    __slots__ = ()

    def _dirty(self):
        if not hasattr(self, "_dirty_fields"):
            object.__setattr__(self, "_dirty_fields", {})
        return self._dirty_fields

    def mark_dirty(self, key):
        # Keep the first prior of the round, later marks must not overwrite it
        dirty = self._dirty()
        if key not in dirty:
            value = getattr(self, key, None)
            try:
                value = copy.copy(value)
            except TypeError:
                # Locks, generators and the like keep the original reference
                pass
            dirty[key] = value

    def attribute_changed(self, key):
        return key in self._dirty()

    def attribute_was(self, key):
        dirty = self._dirty()
        if key in dirty:
            return dirty[key]
        return getattr(self, key, None)

    def attribute_change(self, key):
        if not self.attribute_changed(key):
            return None
        return (self.attribute_was(key), getattr(self, key, None))

    def changes(self):
        return {key: self.attribute_change(key) for key in self._dirty()}

    def get_dirty_fields(self):
        if not hasattr(self, "_dirty_fields"):
            return set()
        return set(self._dirty_fields)

    def clear_dirty(self):
        if hasattr(self, "_dirty_fields"):
            self._dirty_fields.clear()
