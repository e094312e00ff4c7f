"""Context block parsing — detect GEF/pwndbg context output and split it by view."""

from hyperpwn.context.detector import (
    ContextDetector,
    DetectorState,
    Fragment,
    FragmentKind,
    MarkerMatcher,
    RegexMarkers,
)
from hyperpwn.context.splitter import Attribution, SectionPair, attribute, split_block

__all__ = [
    "Attribution",
    "ContextDetector",
    "DetectorState",
    "Fragment",
    "FragmentKind",
    "MarkerMatcher",
    "RegexMarkers",
    "SectionPair",
    "attribute",
    "split_block",
]
