#!/usr/bin/env python3
"""
ABOUTME: Rewrites a .docx (zip) package entry by entry into an atomically committed copy
ABOUTME: Parts can be passed through, replaced, skipped or appended
"""

import os
import tempfile
import zipfile
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Union

from format_errors import FormatAuditError, PackageError, PackageIOError


class _SkipPart:
    def __repr__(self) -> str:
        return 'SKIP_PART'


# Returned by a mutate callback to drop the entry from the output package
SKIP_PART = _SkipPart()

PartData = Union[bytes, _SkipPart]
MutateFn = Callable[[str, bytes], PartData]


def package_part_names(source: Union[str, Path]) -> List[str]:
    """Entry names of a package, in archive order."""
    source = Path(source)
    try:
        with zipfile.ZipFile(source, 'r') as zf:
            return zf.namelist()
    except zipfile.BadZipFile as e:
        raise PackageError("not a valid document package", stage='package', path=source) from e
    except OSError as e:
        raise PackageIOError("cannot read package", stage='package', path=source) from e


def read_parts(source: Union[str, Path], names) -> Dict[str, Optional[bytes]]:
    """
    Read selected parts of a package.

    Returns:
        name -> bytes, or None when the package has no such entry
    """
    source = Path(source)
    try:
        with zipfile.ZipFile(source, 'r') as zf:
            present = set(zf.namelist())
            return {name: (zf.read(name) if name in present else None) for name in names}
    except zipfile.BadZipFile as e:
        raise PackageError("not a valid document package", stage='package', path=source) from e
    except OSError as e:
        raise PackageIOError("cannot read package", stage='package', path=source) from e


def rewrite_package(source: Union[str, Path], mutate: Optional[MutateFn] = None,
                    destination: Union[str, Path, None] = None,
                    extra_parts: Optional[Mapping[str, bytes]] = None,
                    verbose: bool = False) -> Path:
    """
    Copy a package entry by entry, transforming entries on the way.

    Every source entry is offered to mutate(name, data). Returning the same bytes
    passes the entry through; other bytes replace it; SKIP_PART drops it.
    extra_parts are appended after all source entries, in mapping order. A
    skipped entry can come back as an extra part, which moves it to the end.
    Entries keep their original ZipInfo (name, timestamp, compression).

    The output is written to a temporary file next to the destination, flushed to
    disk and moved into place with a single os.replace(). On any failure the
    temporary file is removed and the destination is left as it was.

    Args:
        source: Existing .docx package
        mutate: Per-entry callback; None passes everything through
        destination: Output path; None rewrites the source in place
        extra_parts: New parts (name -> bytes); names must not match a kept source entry
        verbose: Print progress

    Returns:
        Path of the written package

    Raises:
        PackageIOError: source unreadable or destination not writable
        PackageError: source is not a zip package or a new part name collides with a kept entry
    """
    source = Path(source)
    destination = Path(destination) if destination is not None else source
    extra_parts = dict(extra_parts or {})

    if not source.is_file():
        raise PackageIOError("source package not found", stage='package', path=source)
    if not zipfile.is_zipfile(source):
        raise PackageError("not a valid document package", stage='package', path=source)

    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f'.{destination.name}.', suffix='.tmp', dir=str(destination.parent)
        )
    except OSError as e:
        raise PackageIOError("cannot create output file", stage='package', path=destination) from e
    tmp_path = Path(tmp_name)

    try:
        with os.fdopen(fd, 'wb') as fh:
            written, replaced, skipped = _copy_entries(source, fh, mutate, extra_parts)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_path, destination)
    except FormatAuditError:
        _discard(tmp_path)
        raise
    except zipfile.BadZipFile as e:
        _discard(tmp_path)
        raise PackageError("not a valid document package", stage='package', path=source) from e
    except OSError as e:
        _discard(tmp_path)
        raise PackageIOError("failed to write package", stage='package', path=destination) from e
    except BaseException:
        _discard(tmp_path)
        raise

    if verbose:
        print(f"[Package] Wrote {written} part(s) ({replaced} replaced, {skipped} skipped, "
              f"{len(extra_parts)} added) to {destination}")
    return destination


def _copy_entries(source: Path, fh, mutate: Optional[MutateFn],
                  extra_parts: Dict[str, bytes]):
    written = replaced = skipped = 0
    with zipfile.ZipFile(source, 'r') as zin, zipfile.ZipFile(fh, 'w') as zout:
        kept = set()
        last_info = None
        for info in zin.infolist():
            data = zin.read(info)
            new_data = mutate(info.filename, data) if mutate is not None else data
            if new_data is SKIP_PART:
                skipped += 1
                continue
            if new_data is not data and new_data != data:
                replaced += 1
            zout.writestr(info, new_data)
            kept.add(info.filename)
            written += 1
            last_info = info

        collisions = [name for name in extra_parts if name in kept]
        if collisions:
            raise PackageError(f"new part already exists in package: {', '.join(collisions)}",
                               stage='package', path=source)

        for name, data in extra_parts.items():
            info = zipfile.ZipInfo(name, date_time=last_info.date_time if last_info else (1980, 1, 1, 0, 0, 0))
            info.compress_type = zipfile.ZIP_DEFLATED
            zout.writestr(info, data)
            written += 1
    return written, replaced, skipped


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
