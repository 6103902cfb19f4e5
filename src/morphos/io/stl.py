"""Binary STL encoding of MORPHOS solids.

Layout (little endian): an 80-byte header, a ``uint32`` triangle count and
one 50-byte record per triangle: normal, three vertices (12 ``float32``) and
a ``uint16`` attribute word that is always zero. Polygons are fan
triangulated from their first vertex, so an n-gon yields n-2 triangles.

The triangle count is computed first and the whole artifact is written into
a single pre-sized buffer; a final offset that does not land exactly on the
end of the buffer is an encoding failure, never a truncated file.
"""

from __future__ import annotations

import logging
import math
import os
import struct
from dataclasses import dataclass
from typing import BinaryIO, Tuple, Union

from ..errors import EncodingFailed
from ..kernel.geometry import Solid

logger = logging.getLogger(__name__)

_HEADER_SIZE = 80
_COUNT = struct.Struct('<I')
_STRUCT_TRIANGLE = struct.Struct('<12fH')
_RECORD_SIZE = _STRUCT_TRIANGLE.size  # 50
_PREFIX_SIZE = _HEADER_SIZE + _COUNT.size  # 84
_FLOAT32_MAX = 3.4028234663852886e38
_NORMAL_EPS = 1e-12

Vec3 = Tuple[float, float, float]


@dataclass(frozen=True)
class MeshTriangle:
    """One STL facet."""
    normal: Vec3
    v0: Vec3
    v1: Vec3
    v2: Vec3


@dataclass(frozen=True)
class BinaryArtifact:
    """An encoded binary STL file."""
    data: bytes
    triangle_count: int

    def __len__(self) -> int:
        return len(self.data)

    def verify(self) -> int:
        """Re-check the layout; returns the triangle count."""
        count = verify(self.data)
        if count != self.triangle_count:
            raise EncodingFailed(
                f"artifact declares {count} triangles, expected {self.triangle_count}")
        return count


def triangle_count(solid: Solid) -> int:
    """Number of fan triangles ``encode`` will write for ``solid``."""
    return sum(len(poly) - 2 for poly in solid.polygons if len(poly) >= 3)


def triangle_normal(v0: Vec3, v1: Vec3, v2: Vec3) -> Vec3:
    ux, uy, uz = v1[0] - v0[0], v1[1] - v0[1], v1[2] - v0[2]
    wx, wy, wz = v2[0] - v0[0], v2[1] - v0[1], v2[2] - v0[2]
    nx = uy * wz - uz * wy
    ny = uz * wx - ux * wz
    nz = ux * wy - uy * wx
    length = math.sqrt(nx * nx + ny * ny + nz * nz)
    if length <= _NORMAL_EPS:
        return (0.0, 0.0, 0.0)
    return (nx / length, ny / length, nz / length)


def _check_vertex(v: Vec3) -> None:
    for c in v:
        if not math.isfinite(c):
            raise EncodingFailed(f"non-finite coordinate in vertex {tuple(v)}")
        if abs(c) > _FLOAT32_MAX:
            raise EncodingFailed(f"coordinate {c!r} is outside the float32 range")


def _header(name: str) -> bytes:
    header = name[:_HEADER_SIZE].encode('ascii', errors='replace')
    return header.ljust(_HEADER_SIZE, b'\x00')


def encode(solid: Solid, *, name: str = 'MORPHOS', max_triangles: int | None = None) -> BinaryArtifact:
    """Encode ``solid`` as binary STL.

    Raises:
        EncodingFailed: no triangles, a non-finite or out-of-range
            coordinate, or more triangles than ``max_triangles``
    """
    count = triangle_count(solid)
    if count == 0:
        raise EncodingFailed("solid has no triangles to encode")
    if max_triangles is not None and count > max_triangles:
        raise EncodingFailed(f"solid has {count} triangles, limit is {max_triangles}")

    size = _PREFIX_SIZE + _RECORD_SIZE * count
    buffer = bytearray(size)
    buffer[:_HEADER_SIZE] = _header(name)
    _COUNT.pack_into(buffer, _HEADER_SIZE, count)

    offset = _PREFIX_SIZE
    for v0, v1, v2 in solid.triangles():
        _check_vertex(v0)
        _check_vertex(v1)
        _check_vertex(v2)
        _STRUCT_TRIANGLE.pack_into(
            buffer, offset,
            *triangle_normal(v0, v1, v2),
            *v0,
            *v1,
            *v2,
            0,
        )
        offset += _RECORD_SIZE

    if offset != size:
        raise EncodingFailed(f"wrote {offset} bytes into a {size}-byte artifact")
    logger.debug("encoded %d triangles (%d bytes)", count, size)
    return BinaryArtifact(bytes(buffer), count)


def verify(data: bytes) -> int:
    """Check the ``84 + 50 * N`` size invariant and return N."""
    if len(data) < _PREFIX_SIZE:
        raise EncodingFailed(f"artifact is {len(data)} bytes, shorter than the {_PREFIX_SIZE}-byte prefix")
    (count,) = _COUNT.unpack_from(data, _HEADER_SIZE)
    expected = _PREFIX_SIZE + _RECORD_SIZE * count
    if len(data) != expected:
        raise EncodingFailed(f"artifact is {len(data)} bytes, expected {expected} for {count} triangles")
    return count


def decode(data: bytes) -> list[MeshTriangle]:
    """Parse binary STL bytes into triangles."""
    count = verify(data)
    triangles = []
    for i in range(count):
        values = _STRUCT_TRIANGLE.unpack_from(data, _PREFIX_SIZE + i * _RECORD_SIZE)
        triangles.append(MeshTriangle(
            normal=values[0:3],
            v0=values[3:6],
            v1=values[6:9],
            v2=values[9:12],
        ))
    return triangles


def write_stl(artifact: BinaryArtifact, path_or_file: Union[str, os.PathLike, BinaryIO]) -> None:
    """Write ``artifact`` to a filesystem path or an open binary stream."""
    if hasattr(path_or_file, 'write'):
        path_or_file.write(artifact.data)
        return
    with open(path_or_file, 'wb') as stream:
        stream.write(artifact.data)


__all__ = [
    'MeshTriangle',
    'BinaryArtifact',
    'triangle_count',
    'triangle_normal',
    'encode',
    'verify',
    'decode',
    'write_stl',
]
