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

import pytest

from datastore_model.exceptions import TrackChangesError
from datastore_model.model import Model


class Shape(Model):
    fields = ["id", "name", "area"]


Shape.enable_change_tracking("name", "area")


class Drawing(Model):
    fields = ["id", "title", "shapes"]


Drawing.enable_change_tracking("title")


class Gallery(Model):
    fields = ["id", "shapes"]


Gallery.enable_change_tracking("shapes")


class Sketch(Model):
    fields = ["id", "lines"]


class Line(Model):
    fields = ["id", "length"]


def _drawing_with_shapes():
    shapes = [Shape(id=f"s{i}", name=f"shape{i}", area=float(i)) for i in range(1, 4)]
    drawing = Drawing(id="d1", title="plan", shapes=shapes)
    drawing.nested_attributes.append("shapes")
    return drawing, shapes


class TestRemoveUnmodifiedChildren:
    def test_keeps_only_changed_children(self):
        drawing, shapes = _drawing_with_shapes()
        shapes[1].area = 50.0

        drawing.remove_unmodified_children()

        assert len(drawing.shapes) == 1
        assert drawing.shapes[0] is shapes[1]
        assert drawing.nested_attributes == ["shapes"]
        assert shapes[0].exclude_from_save is True
        assert shapes[1].exclude_from_save is False

    def test_no_changed_children(self):
        drawing, shapes = _drawing_with_shapes()

        drawing.remove_unmodified_children()

        assert drawing.shapes == []
        assert "shapes" not in drawing.nested_attributes
        assert not drawing.has_nested_attributes()

    def test_children_marked_for_destruction_are_kept(self):
        drawing, shapes = _drawing_with_shapes()
        shapes[2].mark_for_destruction()

        drawing.remove_unmodified_children()

        assert drawing.shapes == [shapes[2]]

    def test_coerced_child_round_trip_is_removed(self):
        drawing, shapes = _drawing_with_shapes()
        shapes[0].area = "1.0"
        shapes[0].area = 1.0

        drawing.remove_unmodified_children()

        assert drawing.shapes == []

    def test_missing_collection_is_removed(self):
        drawing = Drawing(id="d1", title="plan")
        drawing.nested_attributes.append("shapes")

        drawing.remove_unmodified_children()

        assert drawing.shapes == []
        assert drawing.nested_attributes == []

    def test_nested_list_is_updated_in_place(self):
        drawing, shapes = _drawing_with_shapes()
        registry = drawing.nested_attributes

        drawing.remove_unmodified_children()

        assert registry is drawing.nested_attributes
        assert registry == []

    def test_noop_without_tracking(self):
        sketch = Sketch(id="k1", lines=[Line(id="l1", length=2)])
        sketch.nested_attributes.append("lines")

        sketch.remove_unmodified_children()

        assert len(sketch.lines) == 1
        assert sketch.nested_attributes == ["lines"]

    def test_noop_without_nested_attributes(self):
        drawing, shapes = _drawing_with_shapes()
        drawing.nested_attributes = []

        drawing.remove_unmodified_children()

        assert drawing.shapes == shapes

    def test_unconfigured_child_raises(self):
        drawing = Drawing(id="d1", title="plan", shapes=[Line(id="l1", length=2)])
        drawing.nested_attributes.append("shapes")

        with pytest.raises(TrackChangesError):
            drawing.remove_unmodified_children()

    def test_tracked_collection_goes_through_the_setter(self):
        shapes = [Shape(id="s1", area=1.0), Shape(id="s2", area=2.0)]
        gallery = Gallery(id="g1", shapes=shapes)
        gallery.nested_attributes.append("shapes")
        shapes[0].area = 10.0

        gallery.remove_unmodified_children()

        assert gallery.shapes == [shapes[0]]
        assert gallery.shapes_changed()
        assert gallery.shapes_was() == shapes


class TestAssignNestedAttributes:
    def setup_method(self, method):
        self.drawing = Drawing(id="d1", title="plan")

    def test_builds_new_children(self):
        self.drawing.assign_nested_attributes(
            "shapes",
            {"0": {"id": "", "name": "square", "area": 4.0}, "1": {"name": "circle", "area": 3.14}},
            Shape,
        )

        assert [s.name for s in self.drawing.shapes] == ["square", "circle"]
        assert self.drawing.nested_attributes == ["shapes"]
        assert self.drawing.nested_models() == self.drawing.shapes
        # Values assigned from a form count as changes
        assert all(s.values_changed() for s in self.drawing.shapes)

    def test_association_registered_once(self):
        self.drawing.assign_nested_attributes("shapes", [{"name": "square"}], Shape)
        self.drawing.assign_nested_attributes("shapes", [{"name": "circle"}], Shape)

        assert self.drawing.nested_attributes == ["shapes"]
        assert len(self.drawing.shapes) == 2

    def test_reject_all_blank(self):
        self.drawing.assign_nested_attributes(
            "shapes",
            [{"name": "square", "area": 4.0}, {"name": "", "area": None, "_destroy": "0"}],
            Shape,
            reject_if="all_blank",
        )

        assert len(self.drawing.shapes) == 1

    def test_reject_callable(self):
        self.drawing.assign_nested_attributes(
            "shapes",
            [{"name": "square"}, {"name": "circle"}],
            Shape,
            reject_if=lambda params: params["name"] == "circle",
        )

        assert [s.name for s in self.drawing.shapes] == ["square"]

    def test_updates_existing_children(self):
        square = Shape(id="s1", name="square", area=4.0)
        drawing = Drawing(id="d1", shapes=[square])

        drawing.assign_nested_attributes("shapes", {"0": {"id": "s1", "area": "9.0", "_destroy": "false"}}, Shape)

        assert drawing.shapes == [square]
        assert square.area == "9.0"
        assert square.area_changed()
        assert not square.marked_for_destruction()

    def test_marks_existing_children_for_destruction(self):
        square = Shape(id="s1", name="square", area=4.0)
        circle = Shape(id="s2", name="circle", area=3.0)
        drawing = Drawing(id="d1", shapes=[square, circle])

        drawing.assign_nested_attributes("shapes", [{"id": "s2", "_destroy": "1"}], Shape)
        drawing.remove_unmodified_children()

        assert circle.marked_for_destruction()
        assert drawing.shapes == [circle]

    def test_unknown_id_raises(self):
        drawing = Drawing(id="d1", shapes=[Shape(id="s1")])

        with pytest.raises(KeyError):
            drawing.assign_nested_attributes("shapes", [{"id": "s9", "name": "ghost"}], Shape)

    def test_new_entries_marked_for_destruction_are_dropped(self):
        self.drawing.assign_nested_attributes(
            "shapes",
            [{"name": "ghost", "area": 1.0, "_destroy": "1"}, {"name": "square", "area": 4.0, "_destroy": "0"}],
            Shape,
        )

        assert [s.name for s in self.drawing.shapes] == ["square"]

    def test_only_new_entry_marked_for_destruction(self):
        self.drawing.assign_nested_attributes("shapes", [{"name": "ghost", "area": 1.0, "_destroy": "1"}], Shape)
        self.drawing.remove_unmodified_children()

        assert self.drawing.shapes == []
        assert self.drawing.nested_attributes == []

    def test_nested_models_with_a_single_child(self):
        square = Shape(id="s1", name="square", area=4.0)
        drawing = Drawing(id="d1", shapes=square)
        drawing.nested_attributes.append("shapes")

        assert drawing.nested_models() == [square]

        drawing.shapes = None
        assert drawing.nested_models() == []
