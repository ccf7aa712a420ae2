"""
CSV file I/O for the Trip Sampler.

Centralizes everything that touches the filesystem: streaming raw rows out of
monthly source files, publishing sample artifacts atomically (write to a temp
file in the target directory, fsync, rename), and concatenating per-month
samples into one combined file.
"""

from __future__ import annotations

import contextlib
import csv
import os
import shutil
import tempfile
from pathlib import Path
from typing import Generator, IO, Iterable, Iterator, List, NamedTuple, Sequence, Union

from trip_sampler.domain.errors import SourceNotFound, WriteFailure
from trip_sampler.domain.schema import Record, format_value
from trip_sampler.utils.logging import get_logger

log = get_logger(__name__)

_TMP_SUFFIX = ".tmp"


class MalformedRow(NamedTuple):
    """A source row the CSV parser could not split into fields."""

    line: int
    reason: str


def iter_source_rows(
    path: Path, has_header: bool = True
) -> Iterator[Union[List[str], MalformedRow]]:
    """
    Yield raw rows from a source CSV, discarding the header row when present.

    Rows the parser rejects (an oversized field, a NUL byte) are yielded as
    `MalformedRow` and reading continues with the next line. Bytes that are
    not valid UTF-8 are kept as lone surrogates, which the text decoder
    refuses, so one bad row never ends the stream.

    Raises
    ------
    SourceNotFound
        If the file is missing or cannot be opened or read.
    """
    if not path.is_file():
        raise SourceNotFound(f"Source file not found: {path}")
    try:
        handle = path.open("r", newline="", encoding="utf-8", errors="surrogateescape")
    except OSError as exc:
        raise SourceNotFound(f"Source file not readable: {path} ({exc})") from exc

    with handle:
        reader = csv.reader(handle)
        skip_header = has_header
        while True:
            try:
                row: Union[List[str], MalformedRow] = next(reader)
            except StopIteration:
                return
            except csv.Error as exc:
                row = MalformedRow(reader.line_num, str(exc))
            except OSError as exc:
                raise SourceNotFound(f"Source file not readable: {path} ({exc})") from exc
            if skip_header:
                skip_header = False
                continue
            yield row


def _temp_prefix(target: Path) -> str:
    return f".{target.name}."


@contextlib.contextmanager
def atomic_writer(target: Path) -> Generator[IO[str], None, None]:
    """
    Open a text handle whose content replaces `target` only on clean exit.

    Readers never observe a half-written target: the data goes to a temp file
    beside it and is renamed into place after flush and fsync. On any error the
    temp file is removed and the target is left untouched.
    """
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=target.parent, prefix=_temp_prefix(target), suffix=_TMP_SUFFIX
        )
    except OSError as exc:
        raise WriteFailure(f"Cannot create temp file for {target}: {exc}") from exc

    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", newline="", encoding="utf-8") as handle:
            yield handle
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, target)
    except OSError as exc:
        tmp_path.unlink(missing_ok=True)
        raise WriteFailure(f"Cannot write {target}: {exc}") from exc
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


def write_sample(target: Path, header: Sequence[str], records: Iterable[Record]) -> int:
    """Atomically write a header row plus records; returns the data row count."""
    count = 0
    with atomic_writer(target) as handle:
        writer = csv.writer(handle)
        writer.writerow(header)
        for record in records:
            writer.writerow([format_value(value) for value in record])
            count += 1
    return count


def discard_partial_outputs(target: Path) -> int:
    """Remove temp files left behind for `target` by an interrupted writer."""
    removed = 0
    if not target.parent.is_dir():
        return removed
    for leftover in target.parent.glob(f"{_temp_prefix(target)}*{_TMP_SUFFIX}"):
        try:
            leftover.unlink()
            removed += 1
        except FileNotFoundError:
            continue
    if removed:
        log.info("Discarded partial outputs", extra={"target": str(target), "removed": removed})
    return removed


def concatenate_samples(sources: Sequence[Path], target: Path) -> Path:
    """
    Concatenate sample files byte-for-byte, keeping only the first header row.
    """
    if not sources:
        raise ValueError("No sample files to concatenate")

    with atomic_writer(target) as out:
        for index, source in enumerate(sources):
            try:
                handle = source.open("r", newline="", encoding="utf-8")
            except OSError as exc:
                raise SourceNotFound(f"Sample file not readable: {source} ({exc})") from exc
            with handle:
                header = handle.readline()
                if index == 0:
                    out.write(header)
                shutil.copyfileobj(handle, out)

    log.info(
        "Combined sample written",
        extra={"target": str(target), "files": len(sources)},
    )
    return target


__all__ = [
    "MalformedRow",
    "atomic_writer",
    "concatenate_samples",
    "discard_partial_outputs",
    "iter_source_rows",
    "write_sample",
]
