import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .config import canvas_for_platform
from .document import DEFAULT_COLORS, DesignDocument, MainText, TextStyle
from .geometry import CanvasSize, PercentPoint


logger = logging.getLogger(__name__)

COLOR_SCHEMES: Dict[str, List[str]] = {
    "business": ["#2C3E50", "#3498DB", "#FFFFFF", "#ECF0F1"],
    "creative": ["#E74C3C", "#F39C12", "#9B59B6", "#FFFFFF"],
    "modern": ["#34495E", "#1ABC9C", "#FFFFFF", "#BDC3C7"],
    "elegant": ["#2C2C2C", "#D4AF37", "#FFFFFF", "#F8F8F8"],
    "vibrant": ["#FF6B6B", "#4ECDC4", "#45B7D1", "#FFFFFF"],
    "professional": ["#1E3A8A", "#6B7280", "#FFFFFF", "#F3F4F6"],
}


@dataclass
class DesignSuggestion:
    """One proposed look for a banner, as returned by the LLM (or fallback)."""

    id: int
    name: str
    layout: str
    colors: List[str]
    font: str = ""
    background: str = ""
    elements: List[str] = field(default_factory=list)
    text_hierarchy: str = ""

    def to_document(self, main_text: str, canvas: Optional[CanvasSize] = None) -> DesignDocument:
        """Seed a design document: gradient from the first two colors, centered headline."""
        colors = [c for c in self.colors if c][:2] or list(DEFAULT_COLORS)
        text_color = self.colors[2] if len(self.colors) > 2 else "#FFFFFF"
        short_side = canvas.short_side if canvas is not None else 630
        return DesignDocument(
            canvas=canvas,
            colors=colors,
            main_text=MainText(
                content=main_text,
                style=TextStyle(
                    font_size=round(short_side * 0.08, 2),
                    font_weight="bold",
                    color=text_color,
                    shadow=True,
                ),
                position=PercentPoint(50, 50),
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "layout": self.layout,
            "colors": list(self.colors),
            "font": self.font,
            "background": self.background,
            "elements": list(self.elements),
            "textHierarchy": self.text_hierarchy,
        }


@dataclass
class SuggestionSet:
    designs: List[DesignSuggestion]
    canvas: CanvasSize
    color_schemes: List[List[str]]
    from_fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "designs": [d.to_dict() for d in self.designs],
            "platformDimensions": {"width": self.canvas.width, "height": self.canvas.height},
            "suggestedColorSchemes": self.color_schemes,
            "fromFallback": self.from_fallback,
        }


def suggested_color_schemes(audience: Optional[str], purpose: Optional[str]) -> List[List[str]]:
    audience = (audience or "").lower()
    purpose = (purpose or "").lower()
    schemes: List[List[str]] = []
    if audience == "business" or "professional" in purpose:
        schemes += [COLOR_SCHEMES["business"], COLOR_SCHEMES["professional"]]
    if audience == "influencer" or "creative" in purpose:
        schemes += [COLOR_SCHEMES["creative"], COLOR_SCHEMES["vibrant"]]
    schemes += [COLOR_SCHEMES["modern"], COLOR_SCHEMES["elegant"]]
    return schemes[:3]


def fallback_designs() -> List[DesignSuggestion]:
    return [
        DesignSuggestion(
            id=1,
            name="Bold & Modern",
            layout="Centered text with geometric background",
            colors=list(COLOR_SCHEMES["modern"]),
            font="Bold sans-serif for headline, clean secondary font",
            background="Gradient with geometric shapes",
            elements=["Abstract shapes", "Subtle shadows"],
            text_hierarchy="Large headline, medium subtext, small CTA",
        ),
        DesignSuggestion(
            id=2,
            name="Professional Clean",
            layout="Left-aligned text with right-side accent",
            colors=list(COLOR_SCHEMES["professional"]),
            font="Professional sans-serif throughout",
            background="Clean solid color with subtle texture",
            elements=["Minimal lines", "Professional iconography"],
            text_hierarchy="Clear hierarchy with consistent spacing",
        ),
        DesignSuggestion(
            id=3,
            name="Creative Vibrant",
            layout="Dynamic diagonal layout with overlapping elements",
            colors=list(COLOR_SCHEMES["vibrant"]),
            font="Modern display font for impact",
            background="Colorful gradient with creative elements",
            elements=["Creative shapes", "Playful graphics"],
            text_hierarchy="Eye-catching headline with supporting text",
        ),
    ]


class DesignSuggester:
    """
    Adapter for LLM-powered design suggestions.

    `llm` is any LangChain chat model (e.g. `langchain_openai.ChatOpenAI`).
    Without one, or when the model's reply is unusable, the three static
    designs are returned instead.
    """

    def __init__(self, llm: Any = None) -> None:
        self.llm = llm

    def suggest(
        self,
        *,
        main_text: str,
        platform: str,
        purpose: str = "",
        target_audience: str = "",
        colors: Optional[str] = None,
    ) -> SuggestionSet:
        canvas = canvas_for_platform(platform)
        schemes = suggested_color_schemes(target_audience, purpose)

        designs = None
        if self.llm is not None:
            prompt = self._build_prompt(
                main_text=main_text,
                platform=platform,
                purpose=purpose,
                target_audience=target_audience,
                colors=colors,
            )
            try:
                raw = self.llm.invoke(prompt)
                text = getattr(raw, "content", None) or str(raw)
                designs = self._parse(text)
            except Exception as exc:
                # Any provider failure degrades to the static designs.
                logger.warning("Design suggestion call failed: %s", exc)

        if not designs:
            return SuggestionSet(fallback_designs(), canvas, schemes, from_fallback=True)
        return SuggestionSet(designs, canvas, schemes)

    @staticmethod
    def _parse(text: str) -> List[DesignSuggestion]:
        try:
            payload = json.loads(text)
        except ValueError:
            logger.warning("Design suggestions were not valid JSON; using fallback designs")
            return []
        if not isinstance(payload, dict):
            return []

        designs = []
        for index, item in enumerate(payload.get("designs") or [], start=1):
            if not isinstance(item, dict):
                continue
            colors = [str(c) for c in item.get("colors") or [] if c]
            designs.append(
                DesignSuggestion(
                    id=index,
                    name=str(item.get("name") or f"Design {index}"),
                    layout=str(item.get("layout") or ""),
                    colors=colors or list(DEFAULT_COLORS),
                    font=str(item.get("font") or ""),
                    background=str(item.get("background") or ""),
                    elements=[str(e) for e in item.get("elements") or []],
                    text_hierarchy=str(item.get("textHierarchy") or ""),
                )
            )
        return designs

    @staticmethod
    def _build_prompt(
        *,
        main_text: str,
        platform: str,
        purpose: str,
        target_audience: str,
        colors: Optional[str],
    ) -> str:
        return (
            "You are a professional graphic designer creating 3 distinct design suggestions "
            "for a social media banner.\n\n"
            f"Purpose: {purpose or 'unspecified'}\n"
            f"Platform: {platform}\n"
            f'Main Text: "{main_text}"\n'
            f"Preferred Colors: {colors or 'Not specified'}\n"
            f"Target Audience: {target_audience or 'general'}\n\n"
            "Return ONLY a valid JSON object with this exact shape and no surrounding commentary:\n"
            "{\n"
            '  "designs": [\n'
            '    {"id": 1, "name": "string", "layout": "string", "colors": ["#hex1", "#hex2", "#hex3", "#hex4"],\n'
            '     "font": "string", "background": "string", "elements": ["string"], "textHierarchy": "string"}\n'
            "  ]\n"
            "}\n"
        )
