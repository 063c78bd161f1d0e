#!/usr/bin/env python3
"""
CLI for the recipe OCR pipeline.

Usage:
    # Full pipeline on a photo
    recipe-ocr image path/to/recipe.jpg

    # Structure extraction only, on already recognized text
    recipe-ocr text path/to/ocr_output.txt

    # Machine-readable output
    recipe-ocr image path/to/recipe.jpg --json
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from recipe_ocr.exceptions import RecipeOCRError
from recipe_ocr.models.recipe import OCRCandidate, StructuredRecipe
from recipe_ocr.pipeline import RecipePipeline

console = Console()


def _confidence_color(confidence: float) -> str:
    if confidence >= 70:
        return "green"
    if confidence >= 40:
        return "yellow"
    return "red"


def _print_recipe(recipe: StructuredRecipe, ocr: Optional[OCRCandidate] = None) -> None:
    """Pretty-print a structured recipe to the console."""
    c = _confidence_color(recipe.confidence)
    console.print(
        f"\n  [bold]{recipe.title}[/bold]  "
        f"[{c}]{recipe.confidence:.0f}%[/{c}]  [dim]{recipe.method.value}[/dim]"
    )

    if ocr is not None:
        oc = _confidence_color(ocr.confidence)
        console.print(
            f"  [dim]OCR:[/dim] {ocr.method.value} [{oc}]{ocr.confidence:.0f}%[/{oc}] "
            f"[dim]({ocr.elapsed_ms:.0f} ms)[/dim]"
        )

    meta = []
    if recipe.servings:
        meta.append(f"{recipe.servings} servings")
    if recipe.total_time:
        meta.append(recipe.total_time)
    if meta:
        console.print(f"  [dim]{'  |  '.join(meta)}[/dim]")

    table = Table(show_header=True, header_style="bold", padding=(0, 1))
    table.add_column("#", justify="right")
    table.add_column("Quantity", justify="right")
    table.add_column("Unit")
    table.add_column("Ingredient", min_width=30)
    for i, ingredient in enumerate(recipe.ingredients, start=1):
        item = ingredient.item
        if ingredient.notes:
            item += f" [dim]({ingredient.notes})[/dim]"
        table.add_row(str(i), ingredient.quantity or "", ingredient.unit or "", item)
    console.print(table)

    if recipe.steps:
        steps = Table(show_header=True, header_style="bold", padding=(0, 1))
        steps.add_column("#", justify="right")
        steps.add_column("Step", max_width=80)
        for i, step in enumerate(recipe.steps, start=1):
            steps.add_row(str(i), step)
        console.print(steps)
    else:
        console.print("  [yellow]No steps found[/yellow]")


async def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Recipe OCR: turn a recipe photo (or OCR text) into a structured recipe",
    )
    parser.add_argument(
        "mode", choices=["image", "text"],
        help="'image' runs OCR + parsing, 'text' parses an existing text file",
    )
    parser.add_argument("path", type=str, help="Image or text file")
    parser.add_argument(
        "--json", action="store_true",
        help="Print the result as JSON instead of tables",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    path = Path(args.path)
    if not path.is_file():
        console.print(f"[red]File not found: {args.path}[/red]")
        return 1

    pipeline = RecipePipeline()

    if args.mode == "text":
        recipe = pipeline.parse_text(path.read_text(encoding="utf-8"))
        if args.json:
            print(json.dumps(recipe.model_dump(mode="json"), indent=2, ensure_ascii=False))
        else:
            _print_recipe(recipe)
        return 0

    try:
        result = await pipeline.process_image(path.read_bytes())
    except RecipeOCRError as e:
        console.print(f"[red]ERROR: {e}[/red]")
        return 1

    if args.json:
        print(json.dumps(result.model_dump(mode="json"), indent=2, ensure_ascii=False))
    else:
        _print_recipe(result.recipe, result.ocr)
    return 0


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
