"""Command-line interface for the catalog admin client."""

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Sequence

__all__ = ["main", "parse_args", "run", "load_image_payload", "format_product_row"]

from catalog_admin.config import SETTINGS_PATH
from catalog_admin.image_codec import ImageLoadError, encode_image, open_image, split_payload
from catalog_admin.logging_config import setup_logging
from catalog_admin.models import Product, parse_price
from catalog_admin.settings import JSONFileStore, Settings
from catalog_admin.store import OperationResult, ProductStore, is_error_message
from catalog_admin.transport import Transport


def format_product_row(product: Product) -> str:
    """One line per product: id, name, price and an image marker."""
    ident = f"#{product.id}" if product.id is not None else "#-"
    marker = "[img]" if product.decoded_image else "[no image]"
    line = f"{ident:<6} {product.name:<30} {product.format_price():>16} {marker}"
    if product.description:
        line += f"\n       {product.description[:80]}"
    return line


def load_image_payload(path: str) -> str:
    """Open an image file and compress it into a product image payload.

    Raises:
        ImageLoadError: If the file is unreadable or cannot be compressed
    """
    img = open_image(Path(path))
    payload, _ = encode_image(img)
    if payload is None:
        raise ImageLoadError(f"Could not compress {path} to fit the upload limit")
    return payload


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Admin client for the product catalog backend",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # List all products
  python -m catalog_admin.cli --list

  # Add a product with a photo (compressed to fit the 2MB limit)
  python -m catalog_admin.cli --add "Mug" --price 9.99 --currency USD --image mug.heic

  # Change the price of product 7
  python -m catalog_admin.cli --update 7 --price 12.50

  # Delete product 7
  python -m catalog_admin.cli --delete 7

  # Point the client at another backend and store the admin key
  python -m catalog_admin.cli --set-domain https://api.example.com --set-api-key SECRET
        """,
    )

    actions = parser.add_mutually_exclusive_group()
    actions.add_argument("--list", action="store_true", help="Fetch and list all products")
    actions.add_argument("--add", metavar="NAME", help="Create a product with this name")
    actions.add_argument("--update", metavar="ID", type=int, help="Edit the product with this id")
    actions.add_argument("--delete", metavar="ID", type=int, help="Delete the product with this id")
    actions.add_argument(
        "--encode-image",
        metavar="PATH",
        help="Compress an image file and print its payload (or write it with --output)",
    )
    actions.add_argument(
        "--export-image",
        nargs=2,
        metavar=("ID", "PATH"),
        help="Write the decoded image of a product to PATH",
    )
    actions.add_argument("--show-settings", action="store_true", help="Show current settings")

    # Product fields
    parser.add_argument("--name", help="New name (with --update)")
    parser.add_argument("--price", help="Price, truncated to 2 decimals")
    parser.add_argument("--currency", help="Currency code, e.g. USD or XMR")
    parser.add_argument("--description", help="Product description")
    parser.add_argument("--image", metavar="PATH", help="Image file to attach")
    parser.add_argument("--clear-image", action="store_true", help="Remove the image (with --update)")
    parser.add_argument("--output", metavar="FILE", help="Output file for --encode-image")

    # Settings
    parser.add_argument("--set-domain", metavar="URL", help="Save the API base URL")
    parser.add_argument("--set-api-key", metavar="KEY", help="Save the admin API key")
    parser.add_argument(
        "--settings-file",
        default=SETTINGS_PATH,
        help=f"Settings file (default: {SETTINGS_PATH})",
    )

    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    parser.add_argument("--no-log-file", action="store_true", help="Don't write the JSONL event log")

    return parser.parse_args(argv)


def print_log(store: ProductStore, start: int = 0) -> None:
    for message in store.log.value[start:]:
        prefix = "!" if is_error_message(message) else "-"
        print(f"  {prefix} {message}")


def report(result: OperationResult) -> int:
    if result.success:
        return 0
    print(f"Error: {result.error}", file=sys.stderr)
    return 1


def _log_has_errors(store: ProductStore, start: int) -> bool:
    return any(is_error_message(m) for m in store.log.value[start:])


def _find_product(store: ProductStore, product_id: int) -> Optional[Product]:
    for product in store.products.value:
        if product.id == product_id:
            return product
    return None


def _apply_fields(product: Product, args: argparse.Namespace) -> Product:
    """Return a copy of product with the field flags applied.

    Raises ValueError/ImageLoadError.
    """
    changes = {}
    if args.name is not None:
        changes["name"] = args.name
    if args.price is not None:
        changes["price"] = parse_price(args.price)
    if args.currency is not None:
        changes["currency"] = args.currency.upper()
    if args.description is not None:
        changes["description"] = args.description
    if args.clear_image:
        changes["image"] = ""
    elif args.image is not None:
        changes["image"] = load_image_payload(args.image)
    return replace(product, **changes)


async def run(args: argparse.Namespace, store: ProductStore) -> int:
    """Execute the requested action against a store. Returns an exit code."""
    if args.list:
        await store.fetch_all()
        for product in store.products.value:
            print(format_product_row(product))
        print(f"\n{len(store.products)} products")
        print_log(store)
        return 1 if _log_has_errors(store, 0) else 0

    if args.add is not None:
        if args.price is None:
            print("Error: --price is required with --add", file=sys.stderr)
            return 1
        args.name = args.add
        try:
            product = _apply_fields(Product.blank(), args)
        except (ValueError, ImageLoadError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        result = await store.add_and_refresh(product)
        print_log(store)
        return report(result)

    if args.update is not None:
        await store.fetch_all()
        current = _find_product(store, args.update)
        if current is None:
            print_log(store)
            print(f"Error: product #{args.update} not found", file=sys.stderr)
            return 1
        try:
            product = _apply_fields(current, args)
        except (ValueError, ImageLoadError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        start = len(store.log)
        result = await store.update(product)
        print_log(store, start)
        return report(result)

    if args.delete is not None:
        await store.delete(args.delete)
        print_log(store)
        return 1 if _log_has_errors(store, 0) else 0

    if args.export_image:
        raw_id, path = args.export_image
        try:
            product_id = int(raw_id)
        except ValueError:
            print(f"Error: invalid product id {raw_id!r}", file=sys.stderr)
            return 1
        await store.fetch_all()
        product = _find_product(store, product_id)
        mime_type, data = split_payload(product.image) if product else (None, None)
        if data is None:
            print_log(store)
            print(f"Error: product #{product_id} has no decodable image", file=sys.stderr)
            return 1
        Path(path).write_bytes(data)
        print(f"Wrote {len(data)} bytes ({mime_type}) to {path}")
        return 0

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI."""
    args = parse_args(argv)
    setup_logging(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        log_to_file=not args.no_log_file,
    )

    settings = Settings(JSONFileStore(args.settings_file)).load()

    if args.set_domain is not None or args.set_api_key is not None:
        if args.set_domain is not None:
            settings.api_domain = args.set_domain.strip()
        if args.set_api_key is not None:
            settings.admin_api_key = args.set_api_key.strip()
        settings.save()
        print(f"Saved settings to {args.settings_file}")

    if args.show_settings:
        print(f"API domain:    {settings.api_domain}")
        print(f"Admin API key: {'(set)' if settings.has_api_key else '(not set)'}")
        return 0

    if args.encode_image:
        try:
            payload = load_image_payload(args.encode_image)
        except ImageLoadError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        if args.output:
            Path(args.output).write_text(payload, encoding="ascii")
            print(f"Wrote {len(payload)} characters to {args.output}")
        else:
            print(payload)
        return 0

    remote_action = (
        args.list
        or args.add is not None
        or args.update is not None
        or args.delete is not None
        or args.export_image
    )
    if not remote_action:
        return 0

    transport = Transport()
    try:
        return asyncio.run(run(args, ProductStore(settings, transport)))
    finally:
        transport.close()


if __name__ == "__main__":
    sys.exit(main())
