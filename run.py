#!/usr/bin/env python3
"""
Translate-In-Place

Main entry point: translates the text in one image file and writes the
image with translated bubbles.

Usage:
    python run.py --input <image_path> [--output <output_path>] [--target <lang>]
    python run.py --list-languages
    python run.py --help

Examples:
    # Translate a street sign into English
    python run.py --input "sign.jpg"

    # Into German, with a custom configuration
    python run.py --input "menu.png" --target de --config "config/config.yaml"
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

import yaml

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from translate_in_place.host import FileHostContext
from translate_in_place.language import build_language_picker
from translate_in_place.models import StateKind
from translate_in_place.pipeline import TranslationPipeline


def setup_logging(log_level: str = "INFO"):
    """Configure logging for the application."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
        ]
    )


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Translate-In-Place - Replaces text in a photo with translated bubbles",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python run.py --input "sign.jpg"
    python run.py --input "sign.jpg" --output "outputs/sign_en.png"
    python run.py --input "menu.png" --target de --verbose
        """
    )

    parser.add_argument(
        "-i", "--input",
        help="Path to input image"
    )

    parser.add_argument(
        "-o", "--output",
        default=None,
        help="Path for output image (default: outputs/<input>_translated.png)"
    )

    parser.add_argument(
        "-c", "--config",
        default="config/config.yaml",
        help="Path to configuration file (default: config/config.yaml)"
    )

    parser.add_argument(
        "-t", "--target",
        default=None,
        help="Target language code (overrides the configuration)"
    )

    parser.add_argument(
        "--list-languages",
        action="store_true",
        help="List the target languages of the configured translation service"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )

    parser.add_argument(
        "--gpu",
        action="store_true",
        help="Enable GPU acceleration for OCR"
    )

    return parser.parse_args()


def load_config(args) -> dict:
    """Read the YAML configuration and apply command line overrides."""
    config = {}
    if os.path.exists(args.config):
        with open(args.config, 'r') as f:
            config = yaml.safe_load(f) or {}

    if args.gpu:
        config.setdefault("ocr", {})["use_gpu"] = True
    if args.target:
        config.setdefault("translation", {})["target_language"] = args.target
    return config


def list_languages(config: dict):
    from translate_in_place.translator import Translator

    trans_config = config.get("translation", {})
    translator = Translator(
        service=trans_config.get("service", "google"),
        api_key=trans_config.get("api_key"),
    )
    for language in build_language_picker(translator.supported_languages()):
        print(f"{language.code:10s} {language.display_name}")


def main():
    """Main entry point."""
    args = parse_args()

    log_level = "DEBUG" if args.verbose else "INFO"
    setup_logging(log_level)

    logger = logging.getLogger(__name__)
    config = load_config(args)

    if args.list_languages:
        list_languages(config)
        return

    if not args.input:
        logger.error("--input is required")
        sys.exit(2)

    if not os.path.exists(args.input):
        logger.error(f"Input file not found: {args.input}")
        sys.exit(1)

    output_path = args.output
    if output_path is None:
        base_name = os.path.splitext(os.path.basename(args.input))[0]
        output_path = os.path.join("outputs", f"{base_name}_translated.png")

    logger.info("=" * 60)
    logger.info("Translate-In-Place")
    logger.info("=" * 60)
    logger.info(f"Input: {args.input}")
    logger.info(f"Config: {args.config if os.path.exists(args.config) else 'Using defaults'}")

    host = FileHostContext(args.input, output_path)
    try:
        pipeline = TranslationPipeline(host, config=config)
    except Exception as e:
        logger.error(f"Failed to initialize pipeline: {e}")
        sys.exit(1)

    try:
        asyncio.run(pipeline.start())
    finally:
        pipeline.shutdown()

    state = pipeline.state
    if state.kind == StateKind.FINISHED:
        pipeline.complete()
        logger.info(f"Output saved to: {output_path}")
        logger.info("Translation completed successfully!")
        return

    if state.kind == StateKind.ERROR:
        logger.error(f"Processing failed: {state.message}")
        pipeline.dismiss_error()
    sys.exit(1)


if __name__ == "__main__":
    main()
