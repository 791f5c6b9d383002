from .atmosph_writer import patch_atmosph, write_atmosph
from .profile_writer import read_node_count, write_profile
from .selector_writer import patch_selector, read_selector_parameters, write_selector

__all__ = [
    "patch_atmosph",
    "write_atmosph",
    "read_node_count",
    "write_profile",
    "patch_selector",
    "read_selector_parameters",
    "write_selector",
]
