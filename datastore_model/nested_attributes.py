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

import logging
from typing import Any, Callable, Dict, List, Union

from .attributes import as_list
from .coercion import is_blank, to_boolean

UNASSIGNABLE_KEYS = ("id", "_destroy")


class NestedAttributesMixin:
    """Child model collections held in attributes of a parent model"""

    __slots__ = ()

    @property
    def nested_attributes(self) -> List[str]:
        if getattr(self, "_nested_attributes", None) is None:
            self._nested_attributes = []
        return self._nested_attributes

    @nested_attributes.setter
    def nested_attributes(self, value):
        self._nested_attributes = value

    def has_nested_attributes(self) -> bool:
        return isinstance(self.nested_attributes, list) and len(self.nested_attributes) > 0

    def mark_for_destruction(self) -> None:
        self._marked_for_destruction = True

    def marked_for_destruction(self) -> bool:
        return bool(getattr(self, "_marked_for_destruction", False))

    def nested_models(self) -> list:
        models = []
        for attr in self.nested_attributes:
            models.extend(as_list(getattr(self, attr)))
        return models

    def assign_nested_attributes(
        self,
        association_name: str,
        attributes: Union[List[Dict[str, Any]], Dict[str, Dict[str, Any]]],
        model_class: type,
        reject_if: Union[str, Callable, None] = None,
    ) -> None:
        """
        Builds or updates the children held in association_name.

        attributes is a list of dicts, or a dict of dicts keyed by position as submitted
        by a form ({"0": {...}, "1": {...}}). Entries without an id build a new
        model_class, entries with an id update the existing child with that id and mark
        it for destruction when '_destroy' is truthy. New entries with a truthy
        '_destroy' are dropped.

        reject_if may be "all_blank" or a callable taking the entry; rejected entries do
        not build a new child.

        Raises:
            KeyError: if an entry refers to an id that is not in the association
        """
        if isinstance(attributes, dict):
            attributes = list(attributes.values())

        if getattr(self, association_name) is None:
            setattr(self, association_name, [])
        children = getattr(self, association_name)

        for params in attributes:
            if is_blank(params.get("id")):
                if self._reject_new_record(params, reject_if):
                    continue
                # Assigned after construction so the submitted values count as changes
                child = model_class()
                child.assign_attributes({k: v for k, v in params.items() if k not in UNASSIGNABLE_KEYS})
                children.append(child)
            else:
                existing = next((c for c in children if str(c.id) == str(params["id"])), None)
                if existing is None:
                    raise KeyError("No {} with id {}".format(association_name, params["id"]))
                self._assign_to_or_mark_for_destruction(existing, params)

        if association_name not in self.nested_attributes:
            self.nested_attributes.append(association_name)

        logging.debug("Assigned {} nested {}".format(len(attributes), association_name))

    @staticmethod
    def _reject_new_record(params, reject_if) -> bool:
        # A row removed on the form before it was ever saved
        if to_boolean(params.get("_destroy")):
            return True
        if reject_if == "all_blank":
            return all(is_blank(v) for k, v in params.items() if k != "_destroy")
        if callable(reject_if):
            return bool(reject_if(params))
        return False

    @staticmethod
    def _assign_to_or_mark_for_destruction(record, params) -> None:
        record.assign_attributes({k: v for k, v in params.items() if k not in UNASSIGNABLE_KEYS})
        if to_boolean(params.get("_destroy")):
            record.mark_for_destruction()
