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

from .attributes import Attribute
from .nested_attributes import NestedAttributesMixin
from .track_changes import TrackChangesMixin


class Model(NestedAttributesMixin, TrackChangesMixin):
    """
    Base class for documents of a schemaless datastore.

    Subclasses list their document fields in `fields`, and the child class of each
    field holding nested models in `nested_classes`, e.g.

        class Shape(Model):
            fields = ["id", "name", "area"]

        class Drawing(Model):
            fields = ["id", "title", "shapes"]
            nested_classes = {"shapes": Shape}
    """

    __slots__ = [
        "_attributes",
        "_dirty_fields",
        "_exclude_from_save",
        "_nested_attributes",
        "_marked_for_destruction",
    ]

    fields = []
    nested_classes = {}

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        for name in cls.fields:
            if not isinstance(getattr(cls, name, None), Attribute):
                setattr(cls, name, Attribute(name))

    def __init__(self, from_dict=None, **kwargs):

        self._attributes = {}
        self._dirty_fields = {}
        self._exclude_from_save = None
        self._nested_attributes = []
        self._marked_for_destruction = False

        for name in self.fields:
            self._attributes[name] = None

        if from_dict:
            self.deserialize(from_dict)

        self.assign_attributes(kwargs)

        # Whatever was loaded is the baseline for change tracking
        self.clear_dirty()

    def assign_attributes(self, params):
        """Assign a dictionary of values through the attribute setters"""
        for k, v in params.items():
            if k not in self.fields and k not in self.tracked_attributes():
                raise KeyError("{} has no attribute {}".format(self.__class__.__name__, k))
            setattr(self, k, v)

    @classmethod
    def serialize_value(cls, value):
        if isinstance(value, Model):
            return value.serialize()
        if isinstance(value, (list, tuple)):
            return [cls.serialize_value(v) for v in value]
        return value

    def serialize(self):
        """Serialize the model to a dictionary with plain data types"""
        result = {}
        for k in self.fields:
            result[k] = self.serialize_value(getattr(self, k))
        return result

    @classmethod
    def deserialize_slot(cls, key, value):
        if value is None or key not in cls.nested_classes:
            return value
        child_class = cls.nested_classes[key]

        def build(v):
            return child_class(from_dict=v) if isinstance(v, dict) else v

        if isinstance(value, (list, tuple)):
            return [build(v) for v in value]
        return build(value)

    def deserialize(self, dict):
        """Modify the model by deserializing a dictionary into it"""
        self.assign_attributes({k: self.deserialize_slot(k, v) for k, v in dict.items()})

    def __eq__(self, other):
        if type(other) is not type(self):
            return False
        if self.id is None or other.id is None:
            return self is other
        return other.id == self.id

    def __hash__(self):
        if self.id is None:
            return id(self)
        return hash((type(self).__name__, self.id))

    @property
    def id(self):
        return self._attributes.get("id")

    def __repr__(self):
        return "{}({})".format(self.__class__.__name__, self.serialize())
