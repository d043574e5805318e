"""Tests for loading and serializing design documents."""
import unittest

from banner.document import (
    DEFAULT_COLORS,
    ElementKind,
    ImageBackground,
    SolidGradient,
    load_document,
    parse_canvas,
    require_canvas,
    to_dict,
)
from banner.errors import ValidationError
from banner.geometry import CanvasSize, PercentPoint, PixelRect


SAMPLE = {
    "mainText": "50% OFF",
    "textStyle": {"fontSize": 72, "x": 50, "y": 40, "shadow": True, "gradient": True},
    "colors": ["#111111", "#222222"],
    "backgroundImage": None,
    "designElements": [
        {"id": "a", "type": "shape", "shape": "circle", "x": 10, "y": 20, "width": 80, "height": 60,
         "fill": "#ff0000", "stroke": "#000000", "strokeWidth": 2, "opacity": 0.5, "rotation": 15},
        {"id": "b", "type": "decorative", "element": "sparkle", "color": "#fbbf24"},
    ],
    "textElements": [
        {"id": "t1", "content": "Shop now", "x": 50, "y": 80, "fontSize": 24, "zIndex": 70},
    ],
}


class LoadDocumentTest(unittest.TestCase):
    def test_sample_document_fields(self) -> None:
        doc = load_document(SAMPLE, canvas={"width": 1200, "height": 630})

        self.assertEqual(doc.canvas, CanvasSize(1200, 630))
        self.assertEqual(doc.main_text.content, "50% OFF")
        self.assertEqual(doc.main_text.style.font_size, 72)
        self.assertTrue(doc.main_text.style.shadow)
        self.assertTrue(doc.main_text.style.gradient_fill)
        self.assertEqual(doc.main_text.position, PercentPoint(50, 40))
        self.assertEqual(doc.background, SolidGradient("#111111", "#222222"))

        circle, sparkle = doc.design_elements
        self.assertEqual(circle.kind, ElementKind.SHAPE)
        self.assertEqual(circle.name, "circle")
        self.assertEqual(circle.geometry, PixelRect(10, 20, 80, 60))
        self.assertEqual(circle.opacity, 0.5)
        self.assertEqual(circle.rotation, 15)
        self.assertEqual(sparkle.kind, ElementKind.DECORATION)
        self.assertEqual(sparkle.style.fill, "#fbbf24")
        self.assertEqual(sparkle.geometry, PixelRect(0, 0, 100, 100))

        self.assertEqual(doc.text_boxes[0].z_index, 70)
        self.assertEqual(doc.warnings, [])

    def test_main_text_defaults_scale_with_canvas(self) -> None:
        doc = load_document({"mainText": "Hi"}, canvas={"width": 1080, "height": 1080})
        style = doc.main_text.style
        self.assertAlmostEqual(style.font_size, 86.4)
        self.assertEqual(style.font_weight, "bold")
        self.assertEqual(style.font_family, "Inter")
        self.assertEqual(doc.main_text.position, PercentPoint(50, 50))

    def test_missing_colors_use_defaults(self) -> None:
        doc = load_document({})
        self.assertEqual(doc.gradient, SolidGradient(*DEFAULT_COLORS))
        self.assertIsNone(doc.main_text)

    def test_background_image_with_default_overlay(self) -> None:
        doc = load_document({"backgroundImage": {"url": "https://example.com/a.jpg", "photographer": "Ann"}})
        self.assertIsInstance(doc.background, ImageBackground)
        self.assertEqual(doc.background.overlay_opacity, 0.4)
        self.assertEqual(doc.background.photographer, "Ann")

    def test_out_of_range_position_is_clamped_with_warning(self) -> None:
        with self.assertLogs("banner.document", level="WARNING"):
            doc = load_document({"mainText": "Hi", "textStyle": {"x": 150, "y": -10}})
        self.assertEqual(doc.main_text.position, PercentPoint(98, 2))
        self.assertEqual(len(doc.warnings), 1)

    def test_duplicate_ids_are_renamed(self) -> None:
        with self.assertLogs("banner.document", level="WARNING"):
            doc = load_document(
                {"designElements": [{"id": "x", "type": "shape"}, {"id": "x", "type": "icon"}]}
            )
        ids = [el.id for el in doc.design_elements]
        self.assertEqual(ids, ["x", "x-2"])

    def test_unknown_type_becomes_shape(self) -> None:
        with self.assertLogs("banner.document", level="WARNING"):
            doc = load_document({"designElements": [{"id": "q", "type": "blob"}]})
        self.assertEqual(doc.design_elements[0].kind, ElementKind.SHAPE)

    def test_invalid_opacity_is_clamped(self) -> None:
        with self.assertLogs("banner.document", level="WARNING"):
            doc = load_document({"designElements": [{"id": "q", "type": "shape", "opacity": 3}]})
        self.assertEqual(doc.design_elements[0].opacity, 1.0)

    def test_non_positive_font_size_is_kept_for_layout(self) -> None:
        doc = load_document({"mainText": "Hi", "textStyle": {"fontSize": -4}})
        self.assertEqual(doc.main_text.style.font_size, -4)

    def test_non_object_document_is_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            load_document(["not", "a", "document"])


class CanvasValidationTest(unittest.TestCase):
    def test_missing_canvas(self) -> None:
        with self.assertRaises(ValidationError):
            require_canvas(None)

    def test_non_positive_canvas(self) -> None:
        with self.assertRaises(ValidationError):
            parse_canvas({"width": 0, "height": 630})

    def test_malformed_canvas(self) -> None:
        with self.assertRaises(ValidationError):
            parse_canvas({"width": "wide"})


class SerializationTest(unittest.TestCase):
    def test_to_dict_reloads_to_same_document(self) -> None:
        doc = load_document(SAMPLE, canvas={"width": 1200, "height": 630})
        again = load_document(to_dict(doc))

        self.assertEqual(again.canvas, doc.canvas)
        self.assertEqual(again.main_text, doc.main_text)
        self.assertEqual(again.design_elements, doc.design_elements)
        self.assertEqual(again.text_boxes, doc.text_boxes)
        self.assertEqual(again.colors, doc.colors)


if __name__ == "__main__":
    unittest.main()
