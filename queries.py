"""
Board query utilities: pure predicates over a board snapshot.

Every function answers with a plain value and never raises; malformed hex or
edge keys are treated as "not adjacent" or "excluded".
"""

from typing import Iterable, List, Optional, Sequence

from map_gen import HexKeyError, canonical_edge_key, key_distance, neighbor_hex_keys, parse_hex_key
from models import Board, Hex, Modifier, Unit
from state import load_config

OCCUPANCY_CAP = load_config().get('occupancy_cap', 2)


def is_adjacent(a: str, b: str) -> bool:
    """Check if b is one of the 6 physical axial neighbours of a."""
    try:
        return key_distance(a, b) == 1
    except HexKeyError:
        return False


def is_linked(a: str, b: str, modifiers: Sequence[Modifier], player_id: Optional[str]) -> bool:
    """Check if a 'link' modifier owned by player_id (or ownerless) joins a and b."""
    if a == b:
        return False
    for modifier in modifiers:
        endpoints = modifier.link_endpoints()
        if endpoints is None or not modifier.applies_to(player_id):
            continue
        if endpoints == (a, b) or endpoints == (b, a):
            return True
    return False


def linked_hexes(key: str, modifiers: Sequence[Modifier], player_id: Optional[str]) -> List[str]:
    """Hexes joined to key by an active 'link' modifier."""
    partners = []
    for modifier in modifiers:
        endpoints = modifier.link_endpoints()
        if endpoints is None or not modifier.applies_to(player_id):
            continue
        a, b = endpoints
        if a == key and b != key and b not in partners:
            partners.append(b)
        elif b == key and a != key and a not in partners:
            partners.append(a)
    return partners


def is_edge_locked(a: str, b: str, modifiers: Sequence[Modifier]) -> bool:
    """Check if a 'bridge_lock' modifier forbids crossing the edge a-b."""
    try:
        edge_key = canonical_edge_key(a, b)
    except HexKeyError:
        return False
    return any(m.kind == 'bridge_lock' and m.attached_edge == edge_key for m in modifiers)


def players_on_hex(hex_obj: Hex) -> List[str]:
    return hex_obj.player_ids()


def count_players_on_hex(hex_obj: Hex) -> int:
    return len(players_on_hex(hex_obj))


def is_occupied_by_player(hex_obj: Hex, player_id: Optional[str]) -> bool:
    if player_id is None:
        return False
    return len(hex_obj.occupants.get(player_id, ())) > 0


def has_enemy_units(hex_obj: Hex, player_id: Optional[str]) -> bool:
    return any(owner != player_id for owner in players_on_hex(hex_obj))


def would_exceed_two_players(hex_obj: Hex, player_id: str, cap: int = OCCUPANCY_CAP) -> bool:
    """Check if player_id entering hex_obj would put more than cap distinct owners on it."""
    owners = set(players_on_hex(hex_obj))
    owners.add(player_id)
    return len(owners) > cap


def has_bridge(board: Board, a: str, b: str) -> bool:
    try:
        return canonical_edge_key(a, b) in board.bridges
    except HexKeyError:
        return False


def hex_in_set(key: str, keys: Iterable[str]) -> bool:
    """Membership test that excludes malformed keys."""
    try:
        parse_hex_key(key)
    except HexKeyError:
        return False
    return key in set(keys)


def is_within_distance(a: str, b: str, max_distance: int) -> bool:
    if max_distance < 0:
        return False
    try:
        return key_distance(a, b) <= max_distance
    except HexKeyError:
        return False


def friendly_unit_within(board: Board, player_id: Optional[str], hex_key: str,
                         kind: str, max_distance: int) -> bool:
    """Check if player_id has a unit of the given kind within max_distance of hex_key."""
    if player_id is None:
        return False
    return any(
        unit.kind == kind and unit.owner_player_id == player_id
        and is_within_distance(unit.hex, hex_key, max_distance)
        for unit in board.units.values()
    )


def can_move_between(from_hex: str, to_hex: str, requires_bridge: bool, board: Board,
                     modifiers: Sequence[Modifier], player_id: Optional[str],
                     planned_edges: Iterable[str] = ()) -> bool:
    """
    Check whether a stack may step from from_hex to to_hex.

    The step needs an edge free of any 'bridge_lock' (linked steps included),
    physical adjacency or an active link, a bridge (existing or planned by the
    same action) when one is required on a physical edge, and room for the
    mover under the occupancy cap.

    Args:
        from_hex: Origin hex key
        to_hex: Destination hex key
        requires_bridge: Whether physical edges need a bridge
        board: Board snapshot
        modifiers: Active modifiers
        player_id: Moving player (None skips the occupancy cap)
        planned_edges: Edge keys being built as part of the same compound action

    Returns:
        True if the step is allowed
    """
    if from_hex == to_hex:
        return False
    destination = board.get_hex(to_hex)
    if board.get_hex(from_hex) is None or destination is None:
        return False
    if is_edge_locked(from_hex, to_hex, modifiers):
        return False
    physical = is_adjacent(from_hex, to_hex)
    linked = is_linked(from_hex, to_hex, modifiers, player_id)
    if not (physical or linked):
        return False
    if requires_bridge and physical:
        edge_key = canonical_edge_key(from_hex, to_hex)
        if edge_key not in board.bridges and edge_key not in set(planned_edges):
            return False
    if player_id is not None and would_exceed_two_players(destination, player_id):
        return False
    return True


def friendly_units_on_hex(board: Board, hex_key: str, player_id: Optional[str]) -> List[Unit]:
    if player_id is None:
        return []
    return board.units_on_hex(hex_key, player_id)


def select_moving_units(board: Board, hex_key: str, player_id: Optional[str],
                        force_count: Optional[int] = None,
                        include_champions: Optional[bool] = None) -> List[str]:
    """
    Unit ids that would move off hex_key for a stack move.

    With no force_count the whole friendly stack moves (champions unless
    include_champions is False). With a force_count, exactly that many forces
    move, plus champions only when include_champions is True; an empty list
    means the move is impossible.
    """
    units = friendly_units_on_hex(board, hex_key, player_id)
    forces = [u.id for u in units if u.kind == 'force']
    champions = [u.id for u in units if u.is_champion]
    if force_count is None:
        return forces + (champions if include_champions is not False else [])
    if force_count < 0 or force_count > len(forces):
        return []
    return forces[:force_count] + (champions if include_champions is True else [])


def can_bypass_bridge(hex_key: str, force_count: Optional[int], include_champions: Optional[bool],
                      board: Board, modifiers: Sequence[Modifier], player_id: Optional[str]) -> bool:
    """
    Check whether a stack leaving hex_key may ignore the bridge requirement.

    Only champions holding a 'bridge_bypass' modifier may cross un-bridged
    edges, and only when they move alone: every friendly champion on the hex
    must hold one, no forces may accompany them, and champions must be part of
    the move.
    """
    units = friendly_units_on_hex(board, hex_key, player_id)
    champions = [u for u in units if u.is_champion]
    forces = [u for u in units if u.kind == 'force']
    if not champions or include_champions is False:
        return False
    if force_count is None:
        if forces:
            return False
    elif force_count != 0 or include_champions is not True:
        return False
    bypass_ids = {
        m.unit_id() for m in modifiers
        if m.kind == 'bridge_bypass' and m.applies_to(player_id)
    }
    return all(champion.id in bypass_ids for champion in champions)


def reachable_neighbors(from_hex: str, board: Board, modifiers: Sequence[Modifier],
                        player_id: Optional[str]) -> List[str]:
    """Physical neighbours on the board plus linked hexes, before movement rules."""
    try:
        neighbors = [key for key in neighbor_hex_keys(from_hex) if key in board.hexes]
    except HexKeyError:
        return []
    for partner in linked_hexes(from_hex, modifiers, player_id):
        if partner in board.hexes and partner not in neighbors:
            neighbors.append(partner)
    return neighbors


def get_capital_hex(board: Board, capitals: dict, player_id: Optional[str]) -> Optional[str]:
    """The player's capital hex from the lookup table, else from owned capital tiles."""
    if player_id is None:
        return None
    capital = capitals.get(player_id)
    if capital and capital in board.hexes:
        return capital
    for hex_obj in board.hexes.values():
        if hex_obj.tile == 'capital' and hex_obj.owner_player_id == player_id:
            return hex_obj.key
    return None


def is_champion_warded(unit: Unit, modifiers: Sequence[Modifier]) -> bool:
    """Check if a 'ward' modifier protects this champion from enemy targeting."""
    for modifier in modifiers:
        if modifier.kind != 'ward':
            continue
        if modifier.data.get('scope') == 'ownerChampions':
            if modifier.owner_player_id == unit.owner_player_id:
                return True
        elif modifier.unit_id() == unit.id:
            return True
    return False
