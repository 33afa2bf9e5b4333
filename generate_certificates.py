import argparse
import dataclasses
import logging
import sys
import time
from pathlib import Path

from dotenv import load_dotenv

from certificate_config import AppConfig, load_config, parse_color, parse_mode
from certificate_data import build_certificate_items
from certificate_errors import CertificateError
from certificate_generator import CertificateGenerator, archive_certificates
from certificate_models import BatchResult, Mode, Position
from extract_template_coords import find_anchor_position

logger = logging.getLogger("generate_certificates")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Overlay recipient names onto a certificate template PDF, one file per recipient."
    )
    parser.add_argument("--mode", choices=[m.value for m in Mode], help="Overrides MODE.")
    parser.add_argument("--test-name", help="Recipient name used in test mode. Overrides TEST_NAME.")
    parser.add_argument("--template", help="Template PDF path. Overrides TEMPLATE_PATH.")
    parser.add_argument("--font", help="TTF font path. Overrides FONT_PATH.")
    parser.add_argument("--records", help="Records file (.json or .csv). Overrides RECORDS_PATH.")
    parser.add_argument("--output-dir", help="Output directory. Overrides OUTPUT_DIR.")
    parser.add_argument("--font-size", type=float, help="Default font size. Overrides FONT_SIZE.")
    parser.add_argument(
        "--font-color",
        help="Default font color ('r,g,b', '#rrggbb' or 'rgb(r,g,b)'). Overrides FONT_COLOR.",
    )
    parser.add_argument("--concurrency", type=int, help="Renders in flight at once. Overrides CONCURRENCY.")
    parser.add_argument(
        "--position",
        nargs=2,
        type=float,
        metavar=("X", "Y"),
        help="Explicit name position in points from the bottom-left corner.",
    )
    parser.add_argument(
        "--anchor-text",
        help="Place names at the baseline of this template text instead of centering.",
    )
    parser.add_argument(
        "--zip",
        dest="zip_path",
        help="Also write the generated certificates into this ZIP archive.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level.",
    )
    return parser.parse_args(argv)


def apply_overrides(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    overrides = {}
    if args.mode:
        overrides["mode"] = parse_mode(args.mode)
    if args.test_name:
        overrides["test_name"] = args.test_name
    if args.template:
        overrides["template_path"] = Path(args.template)
    if args.font:
        overrides["font_path"] = Path(args.font)
    if args.records:
        overrides["records_path"] = Path(args.records)
    if args.output_dir:
        overrides["output_dir"] = Path(args.output_dir)
    if args.font_size is not None:
        overrides["font_size"] = args.font_size
    if args.font_color:
        overrides["font_color"] = parse_color(args.font_color)
    if args.concurrency is not None:
        overrides["concurrency"] = args.concurrency
    return dataclasses.replace(config, **overrides)


def log_config(config: AppConfig) -> None:
    logger.info("Configuration loaded:")
    logger.info("   Mode: %s", config.mode.value)
    logger.info("   Font Size: %s", config.font_size)
    logger.info("   Font Color: %s", config.font_color)
    logger.info("   Concurrency: %d", config.concurrency)
    logger.info("   Output Directory: %s", config.output_dir)
    if config.mode == Mode.TEST and config.test_name:
        logger.info("   Test Name: %s", config.test_name)


def report(result: BatchResult, config: AppConfig, duration: float) -> None:
    logger.info("=== Generation Complete ===")
    logger.info("Duration: %.2fs", duration)
    logger.info("Successful: %d", len(result.successful))
    logger.info("Failed: %d", len(result.failed))

    if result.failed:
        logger.error("Failed certificates:")
        for failure in result.failed:
            logger.error("   - %s: %s", failure.item.label, failure.error)

    if result.successful:
        logger.info("[OK] Generated certificates saved in: %s", config.output_dir)
        logger.info("Generated files:")
        for path in result.successful:
            logger.info("   - %s", path)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(levelname)s: %(message)s")
    load_dotenv()

    try:
        config = apply_overrides(load_config(), args)
        log_config(config)

        position = None
        if args.position:
            position = Position(x=args.position[0], y=args.position[1])
        elif args.anchor_text:
            position = find_anchor_position(config.template_path, args.anchor_text)
            logger.info("Anchor %r found at (%.2f, %.2f)", args.anchor_text, position.x, position.y)

        items = build_certificate_items(config)
        if position is not None:
            items = [dataclasses.replace(item, position=position) for item in items]

        generator = CertificateGenerator(config.generation_options())
    except CertificateError as exc:
        logger.error("Application failed to start: %s", exc)
        return 1

    started = time.perf_counter()
    result = generator.generate(items)
    report(result, config, time.perf_counter() - started)

    if args.zip_path and result.successful:
        zip_path = archive_certificates(result.successful, Path(args.zip_path))
        logger.info("Created ZIP archive: %s", zip_path)

    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
