"""
Typed target payloads submitted to the authoritative engine.

Each payload variant validates its own fields once, in __post_init__, and
serializes to the engine's camelCase wire shape with to_dict(). Consumers
never re-inspect field presence: if a payload object exists, it is well-formed.
"""

import logging
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Optional, Tuple, Type, Union

from map_gen import HexKeyError, canonical_edge_key, parse_edge_key, parse_hex_key
from target_specs import TargetKind

logger = logging.getLogger(__name__)


class PayloadError(ValueError):
    """Exception raised when a target payload is malformed."""
    pass


def _check_hex_key(key: Any, field_name: str) -> None:
    try:
        parse_hex_key(key)
    except HexKeyError as e:
        raise PayloadError(f"{field_name}: {e}") from None


def _check_edge_key(edge_key: Any, field_name: str) -> None:
    try:
        a, b = parse_edge_key(edge_key)
        canonical = canonical_edge_key(a, b)
    except HexKeyError as e:
        raise PayloadError(f"{field_name}: {e}") from None
    if canonical != edge_key:
        raise PayloadError(f"{field_name}: edge key is not canonical: {edge_key!r}")


def _check_non_empty(value: Any, field_name: str) -> None:
    if not isinstance(value, str) or not value:
        raise PayloadError(f"{field_name} must be a non-empty string")


def _check_path(path: Any, field_name: str) -> None:
    if not isinstance(path, tuple) or len(path) < 2:
        raise PayloadError(f"{field_name} must hold at least 2 hexes")
    for key in path:
        _check_hex_key(key, field_name)


@dataclass(frozen=True)
class EdgePayload:
    kind: ClassVar[TargetKind] = TargetKind.EDGE
    edge_key: str

    def __post_init__(self):
        _check_edge_key(self.edge_key, 'edgeKey')

    def to_dict(self) -> Dict[str, Any]:
        return {'edgeKey': self.edge_key}


@dataclass(frozen=True)
class MultiEdgePayload:
    kind: ClassVar[TargetKind] = TargetKind.MULTI_EDGE
    edge_keys: Tuple[str, ...]

    def __post_init__(self):
        if not isinstance(self.edge_keys, tuple) or not self.edge_keys:
            raise PayloadError("edgeKeys must hold at least one edge")
        if len(set(self.edge_keys)) != len(self.edge_keys):
            raise PayloadError("edgeKeys must not repeat an edge")
        for edge_key in self.edge_keys:
            _check_edge_key(edge_key, 'edgeKeys')

    def to_dict(self) -> Dict[str, Any]:
        return {'edgeKeys': list(self.edge_keys)}


@dataclass(frozen=True)
class StackPayload:
    kind: ClassVar[TargetKind] = TargetKind.STACK
    from_hex: str
    to_hex: str
    force_count: Optional[int] = None
    include_champions: Optional[bool] = None

    def __post_init__(self):
        _check_hex_key(self.from_hex, 'from')
        _check_hex_key(self.to_hex, 'to')
        if self.from_hex == self.to_hex:
            raise PayloadError("from and to must differ")
        if self.force_count is not None:
            if isinstance(self.force_count, bool) or not isinstance(self.force_count, int) or self.force_count < 0:
                raise PayloadError("forceCount must be a non-negative integer")
        if self.include_champions is not None and not isinstance(self.include_champions, bool):
            raise PayloadError("includeChampions must be a boolean")

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {'from': self.from_hex, 'to': self.to_hex}
        if self.force_count is not None:
            result['forceCount'] = self.force_count
        if self.include_champions is not None:
            result['includeChampions'] = self.include_champions
        return result


@dataclass(frozen=True)
class PathPayload:
    kind: ClassVar[TargetKind] = TargetKind.PATH
    path: Tuple[str, ...]

    def __post_init__(self):
        _check_path(self.path, 'path')

    def to_dict(self) -> Dict[str, Any]:
        return {'path': list(self.path)}


@dataclass(frozen=True)
class MultiPathPayload:
    kind: ClassVar[TargetKind] = TargetKind.MULTI_PATH
    paths: Tuple[Tuple[str, ...], ...]

    def __post_init__(self):
        if not isinstance(self.paths, tuple) or not self.paths:
            raise PayloadError("paths must hold at least one path")
        for path in self.paths:
            _check_path(path, 'paths')
        origins = [path[0] for path in self.paths]
        if len(set(origins)) != len(origins):
            raise PayloadError("paths must start from distinct hexes")

    def to_dict(self) -> Dict[str, Any]:
        return {'paths': [list(path) for path in self.paths]}


@dataclass(frozen=True)
class HexPayload:
    kind: ClassVar[TargetKind] = TargetKind.HEX
    hex_key: str

    def __post_init__(self):
        _check_hex_key(self.hex_key, 'hexKey')

    def to_dict(self) -> Dict[str, Any]:
        return {'hexKey': self.hex_key}


@dataclass(frozen=True)
class HexPairPayload:
    kind: ClassVar[TargetKind] = TargetKind.HEX_PAIR
    first: str
    second: str

    def __post_init__(self):
        _check_hex_key(self.first, 'hexKeys')
        _check_hex_key(self.second, 'hexKeys')

    def to_dict(self) -> Dict[str, Any]:
        return {'hexKeys': [self.first, self.second]}


@dataclass(frozen=True)
class ChampionPayload:
    kind: ClassVar[TargetKind] = TargetKind.CHAMPION
    unit_id: str

    def __post_init__(self):
        _check_non_empty(self.unit_id, 'unitId')

    def to_dict(self) -> Dict[str, Any]:
        return {'unitId': self.unit_id}


@dataclass(frozen=True)
class ChoicePayload:
    kind: ClassVar[TargetKind] = TargetKind.CHOICE
    choice: str
    hex_key: Optional[str] = None

    def __post_init__(self):
        if self.choice not in ('capital', 'occupiedHex'):
            raise PayloadError(f"Unknown choice: {self.choice!r}")
        if self.choice == 'occupiedHex' and self.hex_key is None:
            raise PayloadError("occupiedHex choice needs a hexKey")
        if self.hex_key is not None:
            _check_hex_key(self.hex_key, 'hexKey')

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {'choice': self.choice}
        if self.hex_key is not None:
            result['hexKey'] = self.hex_key
        return result


@dataclass(frozen=True)
class PlayerPayload:
    kind: ClassVar[TargetKind] = TargetKind.PLAYER
    player_id: str

    def __post_init__(self):
        _check_non_empty(self.player_id, 'playerId')

    def to_dict(self) -> Dict[str, Any]:
        return {'playerId': self.player_id}


@dataclass(frozen=True)
class NonePayload:
    kind: ClassVar[TargetKind] = TargetKind.NONE

    def to_dict(self) -> None:
        return None


TargetPayload = Union[EdgePayload, MultiEdgePayload, StackPayload, PathPayload, MultiPathPayload,
                      HexPayload, HexPairPayload, ChampionPayload, ChoicePayload, PlayerPayload,
                      NonePayload]


def build_payload(payload_type: Type, *args, **kwargs) -> Optional[TargetPayload]:
    """
    Construct a payload, returning None instead of raising when it is malformed.

    Selection reducers use this so that an incomplete or inconsistent pick
    leaves the selection without a payload rather than failing.
    """
    try:
        return payload_type(*args, **kwargs)
    except PayloadError as e:
        logger.debug("Discarded %s payload: %s", payload_type.kind.value, e)
        return None


def _read_str_list(raw: Dict[str, Any], key: str) -> Tuple[str, ...]:
    value = raw.get(key)
    if not isinstance(value, list):
        raise PayloadError(f"{key} must be a list")
    return tuple(value)


def parse_payload(raw: Any, kind: Union[TargetKind, str]) -> TargetPayload:
    """
    Parse a wire-shape payload dict for the given target kind.

    Args:
        raw: Payload dict as produced by to_dict() (None for kind 'none')
        kind: TargetKind or its string value

    Returns:
        Validated payload object

    Raises:
        PayloadError: if the kind is unknown or the dict does not match it
    """
    try:
        kind = TargetKind(kind)
    except ValueError:
        raise PayloadError(f"Unknown target kind: {kind!r}") from None
    if kind == TargetKind.NONE:
        if raw not in (None, {}):
            raise PayloadError("Kind 'none' carries no payload")
        return NonePayload()
    if not isinstance(raw, dict):
        raise PayloadError("Payload must be an object")

    if kind == TargetKind.EDGE:
        return EdgePayload(raw.get('edgeKey'))
    if kind == TargetKind.MULTI_EDGE:
        return MultiEdgePayload(_read_str_list(raw, 'edgeKeys'))
    if kind == TargetKind.STACK:
        return StackPayload(raw.get('from'), raw.get('to'), raw.get('forceCount'), raw.get('includeChampions'))
    if kind == TargetKind.PATH:
        return PathPayload(_read_str_list(raw, 'path'))
    if kind == TargetKind.MULTI_PATH:
        paths = _read_str_list(raw, 'paths')
        if not all(isinstance(path, list) for path in paths):
            raise PayloadError("paths must be a list of lists")
        return MultiPathPayload(tuple(tuple(path) for path in paths))
    if kind == TargetKind.HEX:
        return HexPayload(raw.get('hexKey'))
    if kind == TargetKind.HEX_PAIR:
        keys = _read_str_list(raw, 'hexKeys')
        if len(keys) != 2:
            raise PayloadError("hexKeys must hold exactly 2 hexes")
        return HexPairPayload(keys[0], keys[1])
    if kind == TargetKind.CHAMPION:
        return ChampionPayload(raw.get('unitId'))
    if kind == TargetKind.CHOICE:
        return ChoicePayload(raw.get('choice'), raw.get('hexKey'))
    return PlayerPayload(raw.get('playerId'))
