"""msig: fine-grained reactive signals for Python."""

from importlib.metadata import version as _version

__version__ = _version("msig")

from msig._tracking import GLOBAL_SCOPE, Scope, get_max_depth, set_max_depth, untrack, untracked
from msig.errors import CascadeDepthError, ReactiveError
from msig.signal import Accessor, Setter, create_signal
from msig.effect import create_effect
from msig.memo import create_memo
from msig.root import create_root
from msig.resource import Resource, ResourceActions, ResourceInfo, create_resource, next_tick
from msig.store import shallow
# textual NOT auto-imported: opt-in only

__all__ = [
    "Accessor",
    "Setter",
    "create_signal",
    "create_effect",
    "create_memo",
    "create_root",
    "create_resource",
    "Resource",
    "ResourceActions",
    "ResourceInfo",
    "next_tick",
    "untrack",
    "untracked",
    "shallow",
    "Scope",
    "GLOBAL_SCOPE",
    "set_max_depth",
    "get_max_depth",
    "ReactiveError",
    "CascadeDepthError",
]
