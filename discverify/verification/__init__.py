"""Checksums, problems and reference databases."""

from .base import ReferenceDatabase, ReferenceEntry
from .dat_parser import DatDb, load_dat_files, parse_dat_file
from .hasher import HashSet
from .matcher import ReferenceMatcher
from .problems import ProblemCollector

__all__ = [
    "DatDb",
    "HashSet",
    "ProblemCollector",
    "ReferenceDatabase",
    "ReferenceEntry",
    "ReferenceMatcher",
    "load_dat_files",
    "parse_dat_file",
]
