import argparse
import json
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from langchain_openai import ChatOpenAI

from banner.config import Settings, canvas_for_platform
from banner.core import BannerGenerator
from banner.errors import BannerGenerationFailed, LayoutError, ValidationError
from banner.suggestions import DesignSuggester


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Render a banner design document to a PNG, or print design suggestions."
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--design",
        type=Path,
        help="Path to the design document JSON file.",
    )
    source.add_argument(
        "--suggest",
        metavar="TEXT",
        help="Print design suggestions for this headline instead of rendering.",
    )
    parser.add_argument(
        "--platform",
        default="facebook",
        help="Target platform used for the canvas size (instagram, linkedin, twitter, facebook).",
    )
    parser.add_argument("--width", type=int, help="Canvas width in pixels; overrides --platform.")
    parser.add_argument("--height", type=int, help="Canvas height in pixels; overrides --platform.")
    parser.add_argument(
        "--output-root",
        type=Path,
        default=None,
        help="Folder where rendered banners are stored (default: $BANNER_OUTPUT_DIR).",
    )
    parser.add_argument(
        "--local-images",
        type=Path,
        default=None,
        help="Allow background images from this folder (local paths and file:// URLs are refused otherwise).",
    )
    parser.add_argument(
        "--at-time",
        type=float,
        default=None,
        help="Render this animation instant in seconds instead of the settled frame.",
    )
    parser.add_argument("--purpose", default="", help="Banner purpose, used with --suggest.")
    parser.add_argument("--audience", default="", help="Target audience, used with --suggest.")
    return parser.parse_args()


def build_llm(settings: Settings):
    # A real LLM is only configured when OPENAI_API_KEY is present; otherwise
    # the suggester falls back to its static designs (no network calls).
    if not settings.openai_api_key:
        return None
    return ChatOpenAI(
        model=settings.suggestion_model,
        temperature=0.8,
        api_key=settings.openai_api_key,
    )


def main() -> int:
    # Load environment variables from a local .env file if present.
    load_dotenv()
    logging.basicConfig(
        level=os.environ.get("BANNER_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    args = parse_args()
    try:
        settings = Settings.from_env()
    except ValidationError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2
    if args.output_root is not None:
        settings.output_dir = args.output_root
    if args.local_images is not None:
        settings.local_image_root = args.local_images

    if args.suggest:
        suggester = DesignSuggester(llm=build_llm(settings))
        suggestions = suggester.suggest(
            main_text=args.suggest,
            platform=args.platform,
            purpose=args.purpose,
            target_audience=args.audience,
        )
        print(json.dumps(suggestions.to_dict(), indent=2, ensure_ascii=False))
        return 0

    if args.width or args.height:
        canvas = {"width": args.width, "height": args.height}
    else:
        size = canvas_for_platform(args.platform)
        canvas = {"width": size.width, "height": size.height}

    with args.design.open("r", encoding="utf-8") as f:
        design = json.load(f)

    with BannerGenerator(settings=settings) as generator:
        try:
            result = generator.generate(design, canvas, at_time=args.at_time)
        except (BannerGenerationFailed, LayoutError, ValidationError) as exc:
            print(f"Failed to generate banner: {exc}", file=sys.stderr)
            return 1

    print(json.dumps(result.to_dict(), indent=2))
    if result.degraded:
        print("Rendered with fallbacks (see warnings above).", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
