"""I/O utilities for MORPHOS."""

from .stl import BinaryArtifact, MeshTriangle, decode, encode, verify, write_stl

__all__ = ['BinaryArtifact', 'MeshTriangle', 'encode', 'decode', 'verify', 'write_stl']
