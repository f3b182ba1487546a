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


def attribute_values(instance) -> dict:
    """Return the per-instance value store, creating it on first use"""
    if not hasattr(instance, "_attributes"):
        object.__setattr__(instance, "_attributes", {})
    return instance._attributes


class Attribute:
    """A plain document field stored in the owning instance's value store"""

    def __init__(self, name=None):
        self.name = name

    def __set_name__(self, owner, name):
        if self.name is None:
            self.name = name

    def __get__(self, instance, owner=None):
        if instance is None:
            return self
        return attribute_values(instance).get(self.name)

    def __set__(self, instance, value):
        attribute_values(instance)[self.name] = value

    def __repr__(self):
        return f"{self.__class__.__name__}({self.name!r})"


def as_list(value) -> list:
    """None is an empty collection, a lone object is a collection of one"""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]
