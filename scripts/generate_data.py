"""
Synthetic people CSV generator for csv-ingest.

Writes a header line plus N deterministic pseudo-random rows in the
`first_name,last_name,age,education,is_alive` layout, for exercising the
ingester on inputs larger than the bundled six-row example.
"""

from __future__ import annotations

import csv
import random
import sys
import time
from pathlib import Path

import typer

app = typer.Typer(help="Generate a synthetic people CSV for csv-ingest.")

HEADER = ["first_name", "last_name", "age", "education", "is_alive"]
FIRST_NAMES = ["Graham", "John", "Terry", "Eric", "Michael", "Carol", "Connie", "Neil"]
LAST_NAMES = ["Chapman", "Cleese", "Gilliam", "Idle", "Jones", "Palin", "Cleveland", "Innes"]
EDUCATION = ["Cambridge", "Oxford", "Occidental", "Durham", "Edinburgh", ""]


def _generate_rows_csv(csv_path: Path, rows: int, batch_size: int, seed: int) -> None:
    rng = random.Random(seed)

    with csv_path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f, lineterminator="\n")
        writer.writerow(HEADER)

        buffer: list[list[str]] = []
        for _ in range(rows):
            buffer.append(
                [
                    rng.choice(FIRST_NAMES),
                    rng.choice(LAST_NAMES),
                    str(rng.randint(18, 95)),
                    rng.choice(EDUCATION),
                    rng.choice(["yes", "no"]),
                ]
            )
            if len(buffer) >= batch_size:
                writer.writerows(buffer)
                buffer.clear()
        if buffer:
            writer.writerows(buffer)


@app.command()
def main(
    output: Path = typer.Argument(..., help="CSV file to write."),
    rows: int = typer.Option(
        10_000,
        "--rows",
        "-r",
        min=0,
        help="Number of data rows to generate.",
    ),
    batch_size: int = typer.Option(
        1_000,
        "--batch-size",
        "-b",
        min=1,
        help="Rows buffered per write.",
    ),
    seed: int = typer.Option(
        42,
        "--seed",
        help="Deterministic RNG seed.",
    ),
) -> None:
    """
    Generate OUTPUT with a header line and ROWS synthetic people.
    """
    start = time.perf_counter()
    output.parent.mkdir(parents=True, exist_ok=True)
    typer.echo(f"Generating {rows:,} rows -> {output} (seed={seed})")
    _generate_rows_csv(output, rows=rows, batch_size=batch_size, seed=seed)
    duration = time.perf_counter() - start
    typer.echo(f"CSV generation completed in {duration:.2f}s")


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
