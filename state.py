"""
Snapshot parsing and configuration for Bridgefront targeting.

Converts the authoritative engine's JSON board and modifier snapshots into the
immutable models used by the rule functions, and loads tunables from
config.json with built-in defaults.

Malformed entries are skipped rather than raised: a snapshot with one broken
hex still yields a usable board for everything else.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Iterable, List, Optional, Tuple

from models import Board, Bridge, Hex, Modifier, TargetContext, Unit

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: Dict[str, Any] = {
    'occupancy_cap': 2,
    'default_board_radius': 4,
    'label_row_limit': 26,
    'interactive_phases': ['round.action'],
    'sample_mine_count': 4,
    'sample_forge_count': 2,
    'sample_starting_forces': 3,
    'sample_starting_bridges': 2,
    'noise_frequency': 3.0,
}


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load config values, falling back to defaults.

    Args:
        config_path: Path to a JSON config file (default: config.json next to this module)

    Returns:
        Dictionary with every key of DEFAULT_CONFIG
    """
    if config_path is None:
        config_path = os.path.join(os.path.dirname(__file__), 'config.json')
    config = dict(DEFAULT_CONFIG)
    try:
        with open(config_path, 'r') as f:
            loaded = json.load(f)
        if isinstance(loaded, dict):
            config.update(loaded)
    except (FileNotFoundError, json.JSONDecodeError):
        # Use defaults if config file is missing or invalid
        pass
    return config


def _read_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def _read_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _parse_occupants(raw: Any) -> Dict[str, Tuple[str, ...]]:
    if not isinstance(raw, dict):
        return {}
    occupants = {}
    for player_id, unit_ids in raw.items():
        if not isinstance(player_id, str) or not isinstance(unit_ids, list):
            continue
        occupants[player_id] = tuple(u for u in unit_ids if isinstance(u, str) and u)
    return occupants


def parse_hex(raw: Any, key: Optional[str] = None) -> Optional[Hex]:
    """Build a Hex from its wire form, or None if it has no usable key."""
    if not isinstance(raw, dict):
        return None
    hex_key = _read_str(raw.get('key')) or key
    if not hex_key:
        return None
    return Hex(
        key=hex_key,
        tile=_read_str(raw.get('tile')) or 'normal',
        occupants=_parse_occupants(raw.get('occupants')),
        owner_player_id=_read_str(raw.get('ownerPlayerId')),
        mine_value=_read_int(raw.get('mineValue')),
    )


def parse_bridge(raw: Any, key: Optional[str] = None) -> Optional[Bridge]:
    if not isinstance(raw, dict):
        return None
    edge_key = _read_str(raw.get('key')) or key
    if not edge_key:
        return None
    endpoints = edge_key.split('|')
    from_hex = _read_str(raw.get('from')) or endpoints[0]
    to_hex = _read_str(raw.get('to')) or (endpoints[1] if len(endpoints) > 1 else '')
    return Bridge(
        key=edge_key,
        from_hex=from_hex,
        to_hex=to_hex,
        owner_player_id=_read_str(raw.get('ownerPlayerId')),
        temporary=raw.get('temporary') is True,
        locked=raw.get('locked') is True,
    )


def parse_unit(raw: Any, unit_id: Optional[str] = None) -> Optional[Unit]:
    if not isinstance(raw, dict):
        return None
    uid = _read_str(raw.get('id')) or unit_id
    kind = raw.get('kind')
    owner = _read_str(raw.get('ownerPlayerId'))
    hex_key = _read_str(raw.get('hex'))
    if not uid or kind not in ('force', 'champion') or not owner or not hex_key:
        return None
    if kind == 'force':
        return Unit(id=uid, kind=kind, owner_player_id=owner, hex=hex_key)
    return Unit(
        id=uid,
        kind=kind,
        owner_player_id=owner,
        hex=hex_key,
        card_def_id=_read_str(raw.get('cardDefId')),
        hp=_read_int(raw.get('hp')),
        max_hp=_read_int(raw.get('maxHp')),
    )


def _read_section(raw: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = raw.get(name)
    return section if isinstance(section, dict) else {}


def parse_board(raw: Any) -> Board:
    """
    Build an immutable Board from the engine's board snapshot.

    Args:
        raw: Dict with 'hexes', 'bridges' and 'units' maps and an optional 'radius'

    Returns:
        Board containing every well-formed entry
    """
    if not isinstance(raw, dict):
        return Board()
    raw_hexes, raw_bridges, raw_units = (_read_section(raw, name) for name in ('hexes', 'bridges', 'units'))
    hexes: Dict[str, Hex] = {}
    for key, entry in raw_hexes.items():
        hex_obj = parse_hex(entry, key)
        if hex_obj is not None:
            hexes[hex_obj.key] = hex_obj
    bridges: Dict[str, Bridge] = {}
    for key, entry in raw_bridges.items():
        bridge = parse_bridge(entry, key)
        if bridge is not None:
            bridges[bridge.key] = bridge
    units: Dict[str, Unit] = {}
    for key, entry in raw_units.items():
        unit = parse_unit(entry, key)
        if unit is not None:
            units[unit.id] = unit
    skipped = (len(raw_hexes) - len(hexes)) + (len(raw_units) - len(units))
    if skipped:
        logger.debug("Skipped %d malformed board entries", skipped)
    return Board(hexes=hexes, bridges=bridges, units=units, radius=_read_int(raw.get('radius')) or 0)


def _infer_modifier_kind(raw: Dict[str, Any], data: Dict[str, Any]) -> str:
    """Recognise targeting-relevant modifiers from their id and data when no kind is sent."""
    kind = _read_str(raw.get('kind'))
    if kind:
        return kind
    modifier_id = _read_str(raw.get('id')) or ''
    if isinstance(data.get('link'), dict) or modifier_id.endswith('.link'):
        return 'link'
    if modifier_id.endswith('bridge_bypass'):
        return 'bridge_bypass'
    if modifier_id.endswith('.lock') and raw.get('attachedEdge'):
        return 'bridge_lock'
    if isinstance(data.get('targeting'), dict):
        return 'ward'
    return 'other'


def parse_modifier(raw: Any) -> Optional[Modifier]:
    if not isinstance(raw, dict):
        return None
    modifier_id = _read_str(raw.get('id'))
    if not modifier_id:
        return None
    data = raw.get('data') if isinstance(raw.get('data'), dict) else {}
    return Modifier(
        id=modifier_id,
        kind=_infer_modifier_kind(raw, data),
        owner_player_id=_read_str(raw.get('ownerPlayerId')),
        attached_hex=_read_str(raw.get('attachedHex')),
        attached_edge=_read_str(raw.get('attachedEdge')),
        attached_unit_id=_read_str(raw.get('attachedUnitId')),
        data=data,
    )


def parse_modifiers(raw: Any) -> Tuple[Modifier, ...]:
    if not isinstance(raw, list):
        return ()
    modifiers = [parse_modifier(entry) for entry in raw]
    return tuple(m for m in modifiers if m is not None)


def build_context(
    board: Board,
    modifiers: Iterable[Modifier] = (),
    player_id: Optional[str] = None,
    player_ids: Iterable[str] = (),
    capitals: Optional[Dict[str, str]] = None,
    planned_edges: Iterable[str] = (),
) -> TargetContext:
    """
    Assemble a TargetContext, deriving the capital lookup table from capital
    tiles when none is supplied.
    """
    if capitals is None:
        capitals = {
            hex_obj.owner_player_id: hex_obj.key
            for hex_obj in board.hexes.values()
            if hex_obj.tile == 'capital' and hex_obj.owner_player_id
        }
    seats = tuple(player_ids)
    if not seats:
        seats = tuple(sorted(set(capitals) | set(list_players(board))))
    return TargetContext(
        board=board,
        modifiers=tuple(modifiers),
        player_id=player_id,
        player_ids=seats,
        capitals=dict(capitals),
        planned_edges=frozenset(planned_edges),
    )


def board_to_dict(board: Board) -> Dict[str, Any]:
    """
    Serialize a Board back to the engine's wire shape for API responses.
    """
    return {
        'radius': board.radius,
        'hexes': {
            key: {
                'key': hex_obj.key,
                'tile': hex_obj.tile,
                'occupants': {owner: list(ids) for owner, ids in hex_obj.occupants.items()},
                **({'ownerPlayerId': hex_obj.owner_player_id} if hex_obj.owner_player_id else {}),
                **({'mineValue': hex_obj.mine_value} if hex_obj.mine_value is not None else {}),
            }
            for key, hex_obj in board.hexes.items()
        },
        'bridges': {
            key: {
                'key': bridge.key,
                'from': bridge.from_hex,
                'to': bridge.to_hex,
                **({'ownerPlayerId': bridge.owner_player_id} if bridge.owner_player_id else {}),
            }
            for key, bridge in board.bridges.items()
        },
        'units': {
            unit_id: _unit_to_dict(unit)
            for unit_id, unit in board.units.items()
        },
    }


def _unit_to_dict(unit: Unit) -> Dict[str, Any]:
    entry: Dict[str, Any] = {
        'id': unit.id,
        'kind': unit.kind,
        'ownerPlayerId': unit.owner_player_id,
        'hex': unit.hex,
    }
    if unit.is_champion:
        entry.update({'cardDefId': unit.card_def_id, 'hp': unit.hp, 'maxHp': unit.max_hp})
    return entry


def list_players(board: Board) -> List[str]:
    """Player ids that own a capital or a unit, sorted."""
    owners = {h.owner_player_id for h in board.hexes.values() if h.owner_player_id}
    owners.update(u.owner_player_id for u in board.units.values())
    return sorted(owners)
