"""Shared test fixtures and helpers."""

import pytest

from map_gen import canonical_edge_key, generate_board, generate_hex_keys, parse_edge_key
from models import Board, Bridge, Hex, Modifier, Unit
from state import build_context


# --- Helper functions ---


def make_board(units=(), bridges=(), radius=2, tiles=None, owners=None):
    """
    Build a radius-N board for rule tests.

    Args:
        units: (unit_id, kind, owner, hex_key) tuples, listed as occupants in order
        bridges: (hex_a, hex_b) pairs
        tiles: hex key -> tile kind overrides
        owners: hex key -> owning player (for capitals)
    """
    tiles = tiles or {}
    owners = owners or {}
    unit_map = {}
    occupants = {}
    for unit_id, kind, owner, hex_key in units:
        if kind == 'champion':
            unit_map[unit_id] = Unit(id=unit_id, kind=kind, owner_player_id=owner, hex=hex_key,
                                     card_def_id=f"champion.{unit_id}", hp=3, max_hp=3)
        else:
            unit_map[unit_id] = Unit(id=unit_id, kind=kind, owner_player_id=owner, hex=hex_key)
        occupants.setdefault(hex_key, {}).setdefault(owner, []).append(unit_id)
    hexes = {
        key: Hex(
            key=key,
            tile=tiles.get(key, 'normal'),
            occupants={owner: tuple(ids) for owner, ids in occupants.get(key, {}).items()},
            owner_player_id=owners.get(key),
        )
        for key in generate_hex_keys(radius)
    }
    bridge_map = {}
    for a, b in bridges:
        edge_key = canonical_edge_key(a, b)
        from_hex, to_hex = parse_edge_key(edge_key)
        bridge_map[edge_key] = Bridge(key=edge_key, from_hex=from_hex, to_hex=to_hex)
    return Board(hexes=hexes, bridges=bridge_map, units=unit_map, radius=radius)


def make_context(board, player_id='p1', modifiers=(), **kwargs):
    return build_context(board, modifiers, player_id, **kwargs)


def link_modifier(a, b, owner=None, modifier_id='faction.link'):
    return Modifier(id=modifier_id, kind='link', owner_player_id=owner, data={'link': {'from': a, 'to': b}})


def bypass_modifier(unit_id, owner='p1'):
    return Modifier(id=f"{unit_id}.bridge_bypass", kind='bridge_bypass', owner_player_id=owner,
                    attached_unit_id=unit_id)


def lock_modifier(a, b):
    return Modifier(id='card.lock', kind='bridge_lock', attached_edge=canonical_edge_key(a, b))


# --- Fixtures ---


@pytest.fixture
def lone_force_board():
    """Three p1 forces on the center hex, no bridges."""
    return make_board(units=[('f1', 'force', 'p1', '0,0'), ('f2', 'force', 'p1', '0,0'),
                             ('f3', 'force', 'p1', '0,0')])


@pytest.fixture
def bridged_board():
    """p1 forces on the center with a bridge east to 1,0."""
    return make_board(units=[('f1', 'force', 'p1', '0,0'), ('f2', 'force', 'p1', '0,0')],
                      bridges=[('0,0', '1,0')])


@pytest.fixture
def sample_board():
    """Generated radius-4 board (seed=42)."""
    return generate_board(seed=42)


@pytest.fixture
def api_client():
    """Flask test client."""
    from app import app

    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client
