"""Assemblers: one per chunking strategy."""

from .cancellation import CancellationToken
from .base_assembler import BaseAssembler, AssemblyRun
from .single_pass import SinglePassAssembler
from .sequential import SequentialAssembler, run_sequential
from .hierarchical import HierarchicalAssembler, run_hierarchical

__all__ = [
    "CancellationToken",
    "BaseAssembler",
    "AssemblyRun",
    "SinglePassAssembler",
    "SequentialAssembler",
    "run_sequential",
    "HierarchicalAssembler",
    "run_hierarchical",
]
