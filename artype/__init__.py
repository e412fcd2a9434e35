"""Public interface for the Artype typewriter-art generator."""

from __future__ import annotations

from .config import ArtypeConfig, FillPolicy, TransformParams, load_config, save_config
from .converter import convert
from .grid import CharacterGrid
from .mapping import MappingTable
from .overrides import ConfirmationGate, ConfirmationState, OverrideStore
from .render import render_gradient_preview, render_image, render_text
from .session import ArtypeSession, RecomputeOutcome

__all__ = [
    "ArtypeConfig",
    "ArtypeSession",
    "CharacterGrid",
    "ConfirmationGate",
    "ConfirmationState",
    "FillPolicy",
    "MappingTable",
    "OverrideStore",
    "RecomputeOutcome",
    "TransformParams",
    "convert",
    "load_config",
    "render_gradient_preview",
    "render_image",
    "render_text",
    "save_config",
]
