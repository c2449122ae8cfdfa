"""
Hex math and sample board generation for Bridgefront targeting.

Hex keys encode axial coordinates as "q,r". Edge keys join the two hex keys of
a physical edge, ordered by (q, r), with "|". Sample boards are radius-N
hexagons with capitals on the rim, a center tile, and mines and forges placed
where Perlin noise scores highest.
"""

import logging
import random
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from noise import pnoise2

from models import Board, Bridge, Hex, Unit

logger = logging.getLogger(__name__)

# 6 directions: (1,0), (1,-1), (0,-1), (-1,0), (-1,1), (0,1)
AXIAL_DIRECTIONS = [(1, 0), (1, -1), (0, -1), (-1, 0), (-1, 1), (0, 1)]


class HexKeyError(ValueError):
    """Exception raised when a hex or edge key cannot be parsed."""
    pass


def to_hex_key(q: int, r: int) -> str:
    """Encode axial coordinates as a hex key."""
    if isinstance(q, bool) or isinstance(r, bool) or not isinstance(q, int) or not isinstance(r, int):
        raise HexKeyError(f"Hex coordinates must be integers, got ({q!r}, {r!r})")
    return f"{q},{r}"


def parse_hex_key(key: str) -> Tuple[int, int]:
    """
    Decode a hex key into axial coordinates.

    Raises:
        HexKeyError: if the key is not two comma-separated integers
    """
    if not isinstance(key, str):
        raise HexKeyError(f"Hex key must be a string, got {key!r}")
    parts = key.split(',')
    if len(parts) != 2:
        raise HexKeyError(f"Hex key must be in the form q,r: {key!r}")
    try:
        return int(parts[0]), int(parts[1])
    except ValueError:
        raise HexKeyError(f"Hex key coordinates must be integers: {key!r}") from None


def get_hex_neighbors(q: int, r: int) -> List[Tuple[int, int]]:
    """
    Get the 6 neighboring hex coordinates in axial system.

    Args:
        q: Axial coordinate q
        r: Axial coordinate r

    Returns:
        List of (q, r) coordinates for neighboring hexes
    """
    return [(q + dq, r + dr) for dq, dr in AXIAL_DIRECTIONS]


def neighbor_hex_keys(key: str) -> List[str]:
    """Hex keys of the 6 physical neighbours of a hex key."""
    q, r = parse_hex_key(key)
    return [to_hex_key(nq, nr) for nq, nr in get_hex_neighbors(q, r)]


def hex_distance(q1: int, r1: int, q2: int, r2: int) -> int:
    """
    Calculate distance between two hexes using axial coordinates.

    Args:
        q1, r1: Coordinates of first hex
        q2, r2: Coordinates of second hex

    Returns:
        Distance between hexes
    """
    return max(abs(q1 - q2), abs(r1 - r2), abs(-(q1 + r1) + (q2 + r2)))


def key_distance(a: str, b: str) -> int:
    """Hex distance between two hex keys."""
    q1, r1 = parse_hex_key(a)
    q2, r2 = parse_hex_key(b)
    return hex_distance(q1, r1, q2, r2)


def hex_sort_key(key: str) -> Tuple[int, int]:
    """Sort order for hex keys: by q, then r."""
    return parse_hex_key(key)


def canonical_edge_key(a: str, b: str) -> str:
    """
    Order-independent key for the edge between two hexes.

    Raises:
        HexKeyError: if either key is malformed or both keys are the same hex
    """
    if a == b:
        raise HexKeyError(f"Edge endpoints must be distinct: {a!r}")
    first, second = (a, b) if hex_sort_key(a) <= hex_sort_key(b) else (b, a)
    return f"{first}|{second}"


def parse_edge_key(edge_key: str) -> Tuple[str, str]:
    """
    Split an edge key into its two hex keys.

    Raises:
        HexKeyError: if the edge key is not two valid hex keys joined by '|'
    """
    if not isinstance(edge_key, str):
        raise HexKeyError(f"Edge key must be a string, got {edge_key!r}")
    parts = edge_key.split('|')
    if len(parts) != 2:
        raise HexKeyError(f"Edge key must be in the form hexA|hexB: {edge_key!r}")
    parse_hex_key(parts[0])
    parse_hex_key(parts[1])
    return parts[0], parts[1]


def generate_axial_coords(radius: int) -> List[Tuple[int, int]]:
    """All axial coordinates within radius of the origin, ordered by q then r."""
    if radius < 0:
        raise ValueError("radius must be >= 0")
    coords = []
    for q in range(-radius, radius + 1):
        r_min = max(-radius, -q - radius)
        r_max = min(radius, -q + radius)
        for r in range(r_min, r_max + 1):
            coords.append((q, r))
    return coords


def generate_hex_keys(radius: int) -> List[str]:
    return [to_hex_key(q, r) for q, r in generate_axial_coords(radius)]


def capital_positions(radius: int, player_count: int) -> List[Tuple[int, int]]:
    """
    Evenly spaced rim corners for player capitals.

    Args:
        radius: Board radius (capitals sit at this distance from center)
        player_count: Number of players, 1-6

    Returns:
        One (q, r) corner per player
    """
    if not 1 <= player_count <= len(AXIAL_DIRECTIONS):
        raise ValueError(f"player_count must be between 1 and 6, got {player_count}")
    corners = []
    for i in range(player_count):
        dq, dr = AXIAL_DIRECTIONS[round(i * len(AXIAL_DIRECTIONS) / player_count) % 6]
        corners.append((dq * radius, dr * radius))
    return corners


def _distance_grid(coords: np.ndarray, points: np.ndarray) -> np.ndarray:
    """Hex distance from every coordinate row to every point row, shape (N, P)."""
    dq = coords[:, None, 0] - points[None, :, 0]
    dr = coords[:, None, 1] - points[None, :, 1]
    return (np.abs(dq) + np.abs(dr) + np.abs(dq + dr)) // 2


def generate_board(
    seed: int,
    radius: int = 4,
    player_ids: Sequence[str] = ('p1', 'p2'),
    mine_count: int = 4,
    forge_count: int = 2,
    frequency: float = 3.0,
    starting_forces: int = 3,
    starting_bridges: int = 2,
) -> Board:
    """
    Generate a sample board snapshot for previews and fixtures.

    Special tiles go to the hexes with the highest Perlin noise magnitude,
    keeping at least 2 hexes from every capital and off the center tile.
    Each player starts with forces on their capital and bridges from the
    capital to its first on-board neighbours.

    Args:
        seed: Random seed for reproducible generation
        radius: Board radius
        player_ids: Player ids in seat order
        mine_count: Number of mine tiles
        forge_count: Number of forge tiles
        frequency: Perlin noise frequency (lower = more clustered)
        starting_forces: Forces placed on each capital
        starting_bridges: Bridges built from each capital

    Returns:
        Board with hexes, starting bridges and starting units
    """
    rng = random.Random(seed)
    axial = generate_axial_coords(radius)
    coords = np.array(axial, dtype=int)
    capitals = capital_positions(radius, len(player_ids))

    center_distance = _distance_grid(coords, np.zeros((1, 2), dtype=int))[:, 0]
    capital_distance = _distance_grid(coords, np.array(capitals, dtype=int)).min(axis=1)
    scores = np.array([
        abs(pnoise2(q / frequency, r / frequency, octaves=2, persistence=0.6,
                    lacunarity=2.5, base=seed % 256))
        for q, r in axial
    ])
    eligible = (center_distance >= 1) & (capital_distance >= 2)
    ranked = [int(i) for i in np.argsort(-scores, kind='stable') if eligible[i]]
    mine_indices = set(ranked[:mine_count])
    forge_indices = set(ranked[mine_count:mine_count + forge_count])

    capital_owner = {capital: player_id for capital, player_id in zip(capitals, player_ids)}
    units: Dict[str, Unit] = {}
    occupants_by_hex: Dict[str, Dict[str, Tuple[str, ...]]] = {}
    for (q, r), player_id in capital_owner.items():
        key = to_hex_key(q, r)
        unit_ids = tuple(f"{player_id}_f{i}" for i in range(1, starting_forces + 1))
        for unit_id in unit_ids:
            units[unit_id] = Unit(id=unit_id, kind='force', owner_player_id=player_id, hex=key)
        if unit_ids:
            occupants_by_hex[key] = {player_id: unit_ids}

    hexes: Dict[str, Hex] = {}
    for index, (q, r) in enumerate(axial):
        key = to_hex_key(q, r)
        owner: Optional[str] = None
        mine_value: Optional[int] = None
        if (q, r) == (0, 0):
            tile = 'center'
        elif (q, r) in capital_owner:
            tile = 'capital'
            owner = capital_owner[(q, r)]
        elif index in mine_indices:
            tile = 'mine'
            mine_value = rng.randint(1, 3)
        elif index in forge_indices:
            tile = 'forge'
        else:
            tile = 'normal'
        hexes[key] = Hex(key=key, tile=tile, occupants=occupants_by_hex.get(key, {}),
                         owner_player_id=owner, mine_value=mine_value)

    bridges: Dict[str, Bridge] = {}
    for (q, r), player_id in capital_owner.items():
        capital_key = to_hex_key(q, r)
        neighbors = [to_hex_key(nq, nr) for nq, nr in get_hex_neighbors(q, r)]
        on_board = sorted((key for key in neighbors if key in hexes), key=hex_sort_key)
        for neighbor in on_board[:starting_bridges]:
            edge_key = canonical_edge_key(capital_key, neighbor)
            a, b = parse_edge_key(edge_key)
            bridges[edge_key] = Bridge(key=edge_key, from_hex=a, to_hex=b, owner_player_id=player_id)

    logger.debug("Generated board seed=%s radius=%s: %d hexes, %d mines, %d forges, %d bridges",
                 seed, radius, len(hexes), len(mine_indices), len(forge_indices), len(bridges))
    return Board(hexes=hexes, bridges=bridges, units=units, radius=radius)
