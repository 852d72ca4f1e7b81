#!/usr/bin/env python3
"""Print the sections of a text file delimited by begin/end marker lines.

A section starts at a line matching ``--begin`` (the marker line is part of
the section) and runs until a line matching ``--end`` (the marker line is
dropped).
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import re
from collections.abc import AsyncIterator

from agen.batch import chunks


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Split a text file into marker-delimited sections")
    p.add_argument("path", help="Text file to read")
    p.add_argument("--begin", default=r"^BEGIN\b", help="Regex for section start lines")
    p.add_argument("--end", default=r"^END\b", help="Regex for section end lines")
    p.add_argument("--verbose", action="store_true", help="Show chunk telemetry")
    return p.parse_args()


async def read_lines(path: str) -> AsyncIterator[str]:
    lines = await asyncio.to_thread(_read, path)
    for line in lines:
        yield line.rstrip("\n")


def _read(path: str) -> list[str]:
    with open(path, encoding="utf-8") as f:
        return f.readlines()


async def main() -> None:
    args = parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    begin = re.compile(args.begin)
    end = re.compile(args.end)

    async with chunks(
        read_lines(args.path),
        lambda line, _: begin.search(line) is not None,
        lambda line, _: end.search(line) is not None,
        stream_id=args.path,
    ) as stream:
        async for section in stream:
            lines = await section.collect()
            print(f"--- section {section.index} ({len(lines)} lines)")
            for line in lines:
                print(f"  {line}")
        print(f"stats: {stream.stats}")


if __name__ == "__main__":
    asyncio.run(main())
