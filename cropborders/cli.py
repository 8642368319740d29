"""Command-line interface for border cropping.

Environment variables (also read from a .env file):
    CROPBORDERS_WHITE_THRESHOLD, CROPBORDERS_BLACK_THRESHOLD,
    CROPBORDERS_DOWNSCALE, CROPBORDERS_WORKERS
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv
from PIL import Image, UnidentifiedImageError
from tqdm import tqdm

from .config import CropConfig, CropConfigError
from .cropper import CropBordersProcessor

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".bmp", ".webp", ".tiff", ".tif"}
CROPPED_SUFFIX = "_cropped"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def is_image(filepath: Path) -> bool:
    """Check if a file is an image based on extension."""
    return filepath.suffix.lower() in IMAGE_EXTENSIONS


def find_images(path: Path) -> list[Path]:
    """All image files under a directory, recursively, in a stable order."""
    return sorted(f for f in path.rglob("*") if f.is_file() and is_image(f))


def build_config(args) -> CropConfig:
    """Environment, then --config file, then explicit flags."""
    config = CropConfig.from_env()
    if args.config:
        config = CropConfig.from_yaml(args.config, base=config)
    return config.merge(
        white_threshold=args.white_threshold,
        black_threshold=args.black_threshold,
        downscale=args.downscale,
        workers=args.workers,
    )


def default_output(filepath: Path) -> Path:
    return filepath.with_name(f"{filepath.stem}{CROPPED_SUFFIX}{filepath.suffix}")


def load_image(filepath: Path) -> Image.Image:
    with Image.open(filepath) as img:
        img.load()
        return img


def save_image(img: Image.Image, output: Path) -> None:
    """Save img, flattening alpha for formats that cannot store it."""
    output.parent.mkdir(parents=True, exist_ok=True)
    if output.suffix.lower() in (".jpg", ".jpeg") and img.mode not in ("RGB", "L", "CMYK"):
        img = img.convert("RGB")

    params = {}
    exif = img.info.get("exif")
    if exif:
        params["exif"] = exif
    img.save(output, **params)


def _crop_file(processor: CropBordersProcessor, filepath: Path, output: Path) -> bool:
    """Crop one file into output. Returns True if a crop was applied."""
    img = load_image(filepath)
    result = processor.crop_borders(img)
    save_image(result, output)
    return result is not img


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def crop(args, processor: CropBordersProcessor):
    """Crop borders off one image or every image in a directory."""
    path = Path(args.path)

    if path.is_file():
        if not is_image(path):
            print(f"Error: {path} is not a recognized image file")
            sys.exit(1)

        output = Path(args.output) if args.output else default_output(path)
        if output.is_dir():
            output = output / path.name
        try:
            cropped = _crop_file(processor, path, output)
        except (OSError, UnidentifiedImageError) as e:
            print(f"Error: Could not process {path}: {e}")
            sys.exit(1)
        status = "Cropped" if cropped else "Unchanged"
        print(f"{status}: {path} -> {output}")

    elif path.is_dir():
        output_dir = Path(args.output) if args.output else None
        images = find_images(path)
        if output_dir is None:
            images = [f for f in images if not f.stem.endswith(CROPPED_SUFFIX)]

        cropped = 0
        unchanged = 0
        errors = 0
        for filepath in tqdm(images, desc="Cropping"):
            if output_dir is None:
                output = default_output(filepath)
            else:
                output = output_dir / filepath.relative_to(path)
            try:
                if _crop_file(processor, filepath, output):
                    cropped += 1
                else:
                    unchanged += 1
            except (OSError, UnidentifiedImageError) as e:
                tqdm.write(f"Warning: Could not process {filepath}: {e}")
                errors += 1

        print(f"\nCropped {cropped} image(s), {unchanged} unchanged, {errors} error(s).")

    else:
        print(f"Error: {path} does not exist")
        sys.exit(1)


def detect(args, processor: CropBordersProcessor):
    """Print the content box of one image or every image in a directory as JSON."""
    path = Path(args.path)

    if path.is_file():
        try:
            result = processor.detect(load_image(path))
        except (OSError, UnidentifiedImageError) as e:
            print(f"Error: Could not read {path}: {e}")
            sys.exit(1)
        print(json.dumps(result.to_dict()))

    elif path.is_dir():
        for filepath in find_images(path):
            try:
                result = processor.detect(load_image(filepath))
            except (OSError, UnidentifiedImageError) as e:
                print(f"Warning: Could not read {filepath}: {e}", file=sys.stderr)
                continue
            print(json.dumps({"path": str(filepath.relative_to(path)), **result.to_dict()}))

    else:
        print(f"Error: {path} does not exist")
        sys.exit(1)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv=None):
    load_dotenv()
    parser = argparse.ArgumentParser(
        description="Crop uniform white, black or transparent borders off images",
        epilog="Environment variables: CROPBORDERS_WHITE_THRESHOLD, CROPBORDERS_BLACK_THRESHOLD, "
               "CROPBORDERS_DOWNSCALE, CROPBORDERS_WORKERS",
    )
    parser.add_argument("--config", "-c", help="Path to YAML config file")
    parser.add_argument("--white-threshold", type=int, help="Near-white cut-off, exclusive (default: 170)")
    parser.add_argument("--black-threshold", type=int, help="Near-black cut-off, exclusive (default: 5)")
    parser.add_argument("--downscale", type=float, help="Scan thumbnail scale in (0, 1] (default: 0.4)")
    parser.add_argument("--workers", "-w", type=int, help="Threads used for scanning (default: 1)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log progress details")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- crop ---
    crop_parser = subparsers.add_parser("crop", help="Crop borders and save the result")
    crop_parser.add_argument("path", help="Image file or directory")
    crop_parser.add_argument(
        "--output", "-o",
        help="Output file or directory (default: <name>_cropped<ext> beside the input)",
    )
    crop_parser.set_defaults(func=crop)

    # --- detect ---
    detect_parser = subparsers.add_parser("detect", help="Print the content box as JSON")
    detect_parser.add_argument("path", help="Image file or directory")
    detect_parser.set_defaults(func=detect)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        config = build_config(args)
    except CropConfigError as e:
        print(f"Error: {e}")
        sys.exit(2)

    args.func(args, CropBordersProcessor(config))


if __name__ == "__main__":
    main()
