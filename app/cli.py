"""CLI commands for Smart Aisle."""

import argparse
import asyncio
import logging
import sys

import uvicorn

from app.models import Ingredient, Product
from app.services.product_service import InvalidBarcodeError, product_service


def _print_ingredients(ingredients: list[Ingredient]) -> None:
    for ingredient in ingredients:
        print(f"  [{ingredient.quality.value:>9}] {ingredient.name}")
        print(f"              {ingredient.description}")


def _print_product(product: Product) -> None:
    print(f"{product.name} ({product.brand}) - barcode {product.id}")
    print(f"Health score: {product.health_score}/100")
    if product.allergens:
        print("Allergens: " + ", ".join(a.name for a in product.allergens))
    print("Ingredients:")
    _print_ingredients(product.ingredients)


async def lookup(barcode: str, timeout: float) -> None:
    """Look up a barcode and wait for its ingredients to finish loading."""
    try:
        product = await product_service.lookup_product(barcode)
    except InvalidBarcodeError as e:
        print(f"Error: {e}")
        sys.exit(1)

    if product.is_loading:
        product = await product_service.wait_for_product(product.id, timeout=timeout)

    _print_product(product)


async def analyze(text: str) -> None:
    """Analyze a free-text ingredient list."""
    ingredients, health_score = await product_service.analyze_text(text)
    if not ingredients:
        print("No ingredients found.")
        return

    print(f"Health score: {health_score}/100")
    _print_ingredients(ingredients)


def main():
    parser = argparse.ArgumentParser(description="Smart Aisle CLI")
    parser.add_argument(
        "--log-level", default="WARNING", help="Logging level (default WARNING)"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # lookup command
    lookup_parser = subparsers.add_parser("lookup", help="Look up a product by barcode")
    lookup_parser.add_argument("barcode", help="Product barcode (EAN/UPC)")
    lookup_parser.add_argument(
        "--timeout",
        type=float,
        default=60.0,
        help="Seconds to wait for ingredient analysis (default 60)",
    )

    # analyze command
    analyze_parser = subparsers.add_parser(
        "analyze", help="Analyze a free-text ingredient list"
    )
    analyze_parser.add_argument("text", help='Ingredient text, e.g. "Sugar, Salt; Water."')

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address (default 127.0.0.1)")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port (default 8000)")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")

    args = parser.parse_args()

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "lookup":
        asyncio.run(lookup(args.barcode, args.timeout))
    elif args.command == "analyze":
        asyncio.run(analyze(args.text))
    elif args.command == "serve":
        uvicorn.run(
            "app.main:app",
            host=args.host,
            port=args.port,
            reload=args.reload,
            log_level=args.log_level.lower(),
        )
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
