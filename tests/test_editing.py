"""Tests for editor mutations on design documents."""
import unittest

from banner.document import load_document
from banner.editing import (
    add_text_box,
    align_elements,
    duplicate_text_box,
    move_layer,
    nudge_text,
    remove_element,
    set_text_box_position,
    set_text_position,
    update_element,
)
from banner.geometry import CanvasSize, PercentPoint


def _doc():
    return load_document(
        {
            "mainText": "Hello",
            "designElements": [
                {"id": "e0", "type": "shape", "shape": "rectangle", "x": 100, "y": 100, "width": 200, "height": 100},
                {"id": "e1", "type": "shape", "shape": "circle", "x": 400, "y": 300, "width": 100, "height": 50},
                {"id": "e2", "type": "icon", "icon": "heart", "x": 10, "y": 10, "width": 50, "height": 50},
            ],
            "textElements": [{"id": "t0", "content": "Sale", "x": 88, "y": 90}],
        },
        canvas={"width": 1200, "height": 630},
    )


def _ids(doc):
    return [el.id for el in doc.design_elements]


class PositionTest(unittest.TestCase):
    def test_drag_outside_canvas_stores_clamped_position(self) -> None:
        doc = _doc()
        stored = set_text_position(doc, 150, -10)
        self.assertEqual(stored, PercentPoint(98, 2))
        self.assertEqual(doc.main_text.position, PercentPoint(98, 2))

    def test_nudge_is_clamped(self) -> None:
        doc = _doc()
        set_text_position(doc, 97, 50)
        nudge_text(doc, 10, 1)
        self.assertEqual(doc.main_text.position, PercentPoint(98, 51))

    def test_text_box_position(self) -> None:
        doc = _doc()
        set_text_box_position(doc, "t0", 1, 99)
        self.assertEqual(doc.text_boxes[0].position, PercentPoint(2, 98))
        with self.assertRaises(KeyError):
            set_text_box_position(doc, "missing", 10, 10)


class LayerTest(unittest.TestCase):
    def test_move_first_element_to_top(self) -> None:
        doc = _doc()
        move_layer(doc, "e0", "top")
        self.assertEqual(_ids(doc), ["e1", "e2", "e0"])

    def test_move_up_and_down(self) -> None:
        doc = _doc()
        move_layer(doc, "e0", "up")
        self.assertEqual(_ids(doc), ["e1", "e0", "e2"])
        move_layer(doc, "e2", "down")
        self.assertEqual(_ids(doc), ["e1", "e2", "e0"])
        move_layer(doc, "e0", "bottom")
        self.assertEqual(_ids(doc), ["e0", "e1", "e2"])

    def test_moves_past_the_ends_are_ignored(self) -> None:
        doc = _doc()
        move_layer(doc, "e2", "up")
        move_layer(doc, "e0", "down")
        self.assertEqual(_ids(doc), ["e0", "e1", "e2"])

    def test_unknown_direction(self) -> None:
        with self.assertRaises(ValueError):
            move_layer(_doc(), "e0", "sideways")


class ElementEditTest(unittest.TestCase):
    def test_update_and_remove(self) -> None:
        doc = _doc()
        update_element(doc, "e1", rotation=45, opacity=0.5)
        self.assertEqual(doc.design_elements[1].rotation, 45)
        remove_element(doc, "e1")
        self.assertEqual(_ids(doc), ["e0", "e2"])

    def test_update_rejects_unknown_field(self) -> None:
        with self.assertRaises(AttributeError):
            update_element(_doc(), "e1", colour="red")


class TextBoxEditTest(unittest.TestCase):
    def test_duplicate_offsets_and_caps_position(self) -> None:
        doc = _doc()
        copy = duplicate_text_box(doc, "t0")
        self.assertEqual(copy.content, "Sale Copy")
        self.assertEqual(copy.position, PercentPoint(90, 90))
        self.assertNotEqual(copy.id, "t0")
        self.assertEqual(copy.z_index, 11)
        self.assertEqual(len(doc.text_boxes), 2)

    def test_add_text_box_defaults(self) -> None:
        doc = _doc()
        box = add_text_box(doc)
        self.assertEqual(box.content, "New Text")
        self.assertEqual(box.position, PercentPoint(50, 30))
        self.assertTrue(box.style.shadow)


class AlignTest(unittest.TestCase):
    def test_align_left(self) -> None:
        doc = _doc()
        align_elements(doc, "e0", "left")
        self.assertTrue(all(el.geometry.x == 100 for el in doc.design_elements))

    def test_align_center_vertical(self) -> None:
        doc = _doc()
        align_elements(doc, "e0", "center-vertical")
        # anchor spans y 100..200, the 50px circle centers at 125
        self.assertEqual(doc.design_elements[1].geometry.y, 125)

    def test_distribute_horizontal(self) -> None:
        doc = _doc()
        align_elements(doc, "e0", "distribute-horizontal", CanvasSize(1200, 630))
        xs = [doc.design_elements[1].geometry.x, doc.design_elements[2].geometry.x]
        self.assertAlmostEqual(xs[0], (1200 - 100) / 3)
        self.assertAlmostEqual(xs[1], (1200 - 50) / 3 * 2)


if __name__ == "__main__":
    unittest.main()
