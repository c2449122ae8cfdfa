"""
Declarative target requirements for cards and basic actions.

A TargetSpec is one of a closed set of frozen dataclasses, one per target
kind, each carrying only the fields that kind uses. parse_target_spec turns
the engine's camelCase card definition into the matching variant.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Tuple, Union

logger = logging.getLogger(__name__)

OWNER_FILTERS = ('self', 'enemy', 'any')
OCCUPANCY_FILTERS = ('occupied', 'empty', 'either')


class TargetKind(Enum):
    EDGE = "edge"
    MULTI_EDGE = "multiEdge"
    STACK = "stack"
    PATH = "path"
    MULTI_PATH = "multiPath"
    HEX = "hex"
    HEX_PAIR = "hexPair"
    CHAMPION = "champion"
    CHOICE = "choice"
    PLAYER = "player"
    NONE = "none"


@dataclass(frozen=True)
class HexFilter:
    """Per-hex eligibility shared by the hex, hexPair and choice kinds."""
    owner: str = 'any'
    tile: Optional[str] = None
    occupancy: str = 'either'
    allow_empty: bool = False  # Lets an empty hex pass owner='self'
    allow_capital: bool = True
    max_distance_from_capital: Optional[int] = None
    max_distance_from_friendly_champion: Optional[int] = None
    max_distance_from_friendly_force: Optional[int] = None


@dataclass(frozen=True)
class EdgeSpec:
    kind: ClassVar[TargetKind] = TargetKind.EDGE
    requires_occupied_endpoint: bool = True
    anywhere: bool = False
    existing_bridge: bool = False  # True targets built bridges, False targets open edges


@dataclass(frozen=True)
class MultiEdgeSpec(EdgeSpec):
    kind: ClassVar[TargetKind] = TargetKind.MULTI_EDGE
    min_edges: int = 1
    max_edges: int = 1


@dataclass(frozen=True)
class StackSpec:
    kind: ClassVar[TargetKind] = TargetKind.STACK
    requires_bridge: bool = True
    force_count: Optional[int] = None
    include_champions: Optional[bool] = None


@dataclass(frozen=True)
class PathSpec(StackSpec):
    kind: ClassVar[TargetKind] = TargetKind.PATH
    max_distance: Optional[int] = None
    stop_on_occupied: bool = False


@dataclass(frozen=True)
class MultiPathSpec(PathSpec):
    kind: ClassVar[TargetKind] = TargetKind.MULTI_PATH
    min_paths: int = 1
    max_paths: int = 1


@dataclass(frozen=True)
class HexSpec:
    kind: ClassVar[TargetKind] = TargetKind.HEX
    filter: HexFilter = field(default_factory=HexFilter)


@dataclass(frozen=True)
class HexPairSpec:
    kind: ClassVar[TargetKind] = TargetKind.HEX_PAIR
    filter: HexFilter = field(default_factory=HexFilter)
    allow_same: bool = False


@dataclass(frozen=True)
class ChampionSpec:
    kind: ClassVar[TargetKind] = TargetKind.CHAMPION
    owner: str = 'self'
    max_distance_from_capital: Optional[int] = None
    max_distance_from_friendly_champion: Optional[int] = None
    max_distance_from_friendly_force: Optional[int] = None


@dataclass(frozen=True)
class ChoiceOption:
    kind: str  # 'capital' or 'occupiedHex'
    owner: str = 'self'


@dataclass(frozen=True)
class ChoiceSpec:
    kind: ClassVar[TargetKind] = TargetKind.CHOICE
    options: Tuple[ChoiceOption, ...] = ()


@dataclass(frozen=True)
class PlayerSpec:
    kind: ClassVar[TargetKind] = TargetKind.PLAYER
    owner: str = 'enemy'


@dataclass(frozen=True)
class NoneSpec:
    kind: ClassVar[TargetKind] = TargetKind.NONE


TargetSpec = Union[EdgeSpec, MultiEdgeSpec, StackSpec, PathSpec, MultiPathSpec, HexSpec,
                   HexPairSpec, ChampionSpec, ChoiceSpec, PlayerSpec, NoneSpec]

CHOICE_OPTION_KINDS = ('capital', 'occupiedHex')

# Specs for the basic actions every player can take without a card
BASIC_ACTION_SPECS: Dict[str, TargetSpec] = {
    'buildBridge': EdgeSpec(),
    'march': StackSpec(),
    'capitalReinforce': ChoiceSpec(options=(ChoiceOption(kind='capital'),)),
}


class SpecError(ValueError):
    """Exception raised when a raw target spec is inconsistent."""
    pass


def _read_bool(raw: Dict[str, Any], key: str, default: bool) -> bool:
    value = raw.get(key)
    return value if isinstance(value, bool) else default


def _read_int(raw: Dict[str, Any], key: str) -> Optional[int]:
    value = raw.get(key)
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _read_owner(raw: Dict[str, Any], default: str) -> str:
    owner = raw.get('owner', default)
    if owner not in OWNER_FILTERS:
        raise SpecError(f"Invalid owner filter: {owner!r}")
    return owner


def _parse_hex_filter(raw: Dict[str, Any]) -> HexFilter:
    occupancy = raw.get('occupancy')
    if occupancy is None:
        if raw.get('requiresEmpty') is True:
            occupancy = 'empty'
        elif raw.get('occupied') is True:
            occupancy = 'occupied'
        else:
            occupancy = 'either'
    if occupancy not in OCCUPANCY_FILTERS:
        raise SpecError(f"Invalid occupancy filter: {occupancy!r}")
    tile = raw.get('tile')
    return HexFilter(
        owner=_read_owner(raw, 'any'),
        tile=tile if isinstance(tile, str) and tile else None,
        occupancy=occupancy,
        allow_empty=_read_bool(raw, 'allowEmpty', False) or raw.get('requiresEmpty') is True,
        allow_capital=_read_bool(raw, 'allowCapital', True),
        max_distance_from_capital=_read_int(raw, 'maxDistanceFromCapital'),
        max_distance_from_friendly_champion=_read_int(raw, 'maxDistanceFromFriendlyChampion'),
        max_distance_from_friendly_force=_read_int(raw, 'maxDistanceFromFriendlyForce'),
    )


def _parse_edge_fields(raw: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'requires_occupied_endpoint': _read_bool(raw, 'requiresOccupiedEndpoint', True),
        'anywhere': _read_bool(raw, 'anywhere', False),
        'existing_bridge': _read_bool(raw, 'existingBridge', False),
    }


def _parse_stack_fields(raw: Dict[str, Any]) -> Dict[str, Any]:
    requires_bridge = _read_bool(raw, 'requiresBridge', True)
    if raw.get('ignoresBridges') is True:
        requires_bridge = False
    include = raw.get('includeChampions')
    return {
        'requires_bridge': requires_bridge,
        'force_count': _read_int(raw, 'forceCount'),
        'include_champions': include if isinstance(include, bool) else None,
    }


def _parse_path_fields(raw: Dict[str, Any]) -> Dict[str, Any]:
    fields = _parse_stack_fields(raw)
    fields['max_distance'] = _read_int(raw, 'maxDistance')
    fields['stop_on_occupied'] = _read_bool(raw, 'stopOnOccupied', False)
    return fields


def _parse_bounds(raw: Dict[str, Any], min_key: str, max_key: str) -> Tuple[int, int]:
    low = _read_int(raw, min_key)
    high = _read_int(raw, max_key)
    low = 1 if low is None else low
    high = max(low, 1) if high is None else high
    if low < 0 or high < 1 or low > high:
        raise SpecError(f"Invalid cardinality bounds: {min_key}={low}, {max_key}={high}")
    return low, high


def _parse_champion(raw: Dict[str, Any]) -> ChampionSpec:
    friendly_champion = _read_int(raw, 'maxDistanceFromFriendlyChampion')
    if friendly_champion is None and raw.get('requiresFriendlyChampion') is True:
        # Cards without a distance bound can never be satisfied
        friendly_champion = _read_int(raw, 'maxDistance')
        if friendly_champion is None:
            friendly_champion = -1
    return ChampionSpec(
        owner=_read_owner(raw, 'self'),
        max_distance_from_capital=_read_int(raw, 'maxDistanceFromCapital'),
        max_distance_from_friendly_champion=friendly_champion,
        max_distance_from_friendly_force=_read_int(raw, 'maxDistanceFromFriendlyForce'),
    )


def _parse_choice(raw: Dict[str, Any]) -> ChoiceSpec:
    options = []
    for entry in raw.get('options') or []:
        if not isinstance(entry, dict) or entry.get('kind') not in CHOICE_OPTION_KINDS:
            raise SpecError(f"Invalid choice option: {entry!r}")
        options.append(ChoiceOption(kind=entry['kind'], owner=_read_owner(entry, 'self')))
    if not options:
        raise SpecError("Choice spec needs at least one option")
    return ChoiceSpec(options=tuple(options))


def parse_target_spec(raw: Any) -> Optional[TargetSpec]:
    """
    Build the TargetSpec variant for a card's raw targetSpec.

    Args:
        raw: The card definition's targetSpec dictionary

    Returns:
        TargetSpec variant, or None when the kind is unknown or the fields are
        inconsistent (callers treat None as "nothing is selectable")
    """
    if not isinstance(raw, dict):
        return None
    try:
        kind = TargetKind(raw.get('kind'))
    except ValueError:
        logger.debug("Unsupported target kind %r", raw.get('kind'))
        return None
    try:
        if kind == TargetKind.EDGE:
            return EdgeSpec(**_parse_edge_fields(raw))
        if kind == TargetKind.MULTI_EDGE:
            low, high = _parse_bounds(raw, 'minEdges', 'maxEdges')
            return MultiEdgeSpec(min_edges=low, max_edges=high, **_parse_edge_fields(raw))
        if kind == TargetKind.STACK:
            return StackSpec(**_parse_stack_fields(raw))
        if kind == TargetKind.PATH:
            return PathSpec(**_parse_path_fields(raw))
        if kind == TargetKind.MULTI_PATH:
            low, high = _parse_bounds(raw, 'minPaths', 'maxPaths')
            return MultiPathSpec(min_paths=low, max_paths=high, **_parse_path_fields(raw))
        if kind == TargetKind.HEX:
            return HexSpec(filter=_parse_hex_filter(raw))
        if kind == TargetKind.HEX_PAIR:
            return HexPairSpec(filter=_parse_hex_filter(raw), allow_same=_read_bool(raw, 'allowSame', False))
        if kind == TargetKind.CHAMPION:
            return _parse_champion(raw)
        if kind == TargetKind.CHOICE:
            return _parse_choice(raw)
        if kind == TargetKind.PLAYER:
            return PlayerSpec(owner=_read_owner(raw, 'enemy'))
        return NoneSpec()
    except SpecError as e:
        logger.debug("Rejected %s target spec: %s", kind.value, e)
        return None


def spec_for_basic_action(action_kind: str) -> Optional[TargetSpec]:
    """TargetSpec for a basic action ('buildBridge', 'march', 'capitalReinforce')."""
    return BASIC_ACTION_SPECS.get(action_kind)
