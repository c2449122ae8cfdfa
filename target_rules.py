"""
Legal-target rules, one per target kind.

Every rule is a pure function of the TargetContext, the TargetSpec variant and the
pending parts of the selection, and answers with a Candidates triple:
start hexes (where a selection may begin), candidate hexes (where the next
click may land) and candidate edges. compute_candidates dispatches on the
spec's kind and never raises.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Sequence, Set, Tuple

from map_gen import HexKeyError, canonical_edge_key, neighbor_hex_keys
from models import Candidates, Hex, TargetContext, Unit
from queries import (can_bypass_bridge, can_move_between, friendly_unit_within, get_capital_hex,
                     has_enemy_units, is_champion_warded, is_occupied_by_player,
                     is_within_distance, reachable_neighbors, select_moving_units)
from target_specs import (ChampionSpec, ChoiceOption, ChoiceSpec, EdgeSpec, HexFilter, HexPairSpec,
                          HexSpec, MultiPathSpec, PathSpec, PlayerSpec, StackSpec, TargetKind,
                          TargetSpec)

if TYPE_CHECKING:
    from selection import SelectionState

logger = logging.getLogger(__name__)


# --- Shared filters ---

def owner_matches(owner_filter: str, owner_id: Optional[str], player_id: Optional[str]) -> bool:
    """Check a unit or player owner against a 'self' / 'enemy' / 'any' filter."""
    if owner_filter == 'any':
        return True
    if player_id is None:
        return False
    if owner_filter == 'self':
        return owner_id == player_id
    return owner_id != player_id


def _within_distance_filters(ctx: TargetContext, hex_key: str,
                             from_capital: Optional[int],
                             from_champion: Optional[int],
                             from_force: Optional[int]) -> bool:
    if from_capital is not None:
        capital = get_capital_hex(ctx.board, ctx.capitals, ctx.player_id)
        if capital is None or not is_within_distance(capital, hex_key, from_capital):
            return False
    if from_champion is not None:
        if not friendly_unit_within(ctx.board, ctx.player_id, hex_key, 'champion', from_champion):
            return False
    if from_force is not None:
        if not friendly_unit_within(ctx.board, ctx.player_id, hex_key, 'force', from_force):
            return False
    return True


def hex_passes_filter(ctx: TargetContext, hex_obj: Hex, hex_filter: HexFilter) -> bool:
    """
    Check one hex against a HexFilter.

    Owner is judged by occupancy: 'self' needs a friendly unit on the hex
    (or an empty hex when allow_empty is set), 'enemy' needs a unit of
    another player.
    """
    occupied = bool(hex_obj.player_ids())
    if hex_filter.tile is not None and hex_obj.tile != hex_filter.tile:
        return False
    if not hex_filter.allow_capital and hex_obj.tile == 'capital':
        return False
    if hex_filter.occupancy == 'occupied' and not occupied:
        return False
    if hex_filter.occupancy == 'empty' and occupied:
        return False
    if hex_filter.owner == 'self':
        if not is_occupied_by_player(hex_obj, ctx.player_id):
            if not (hex_filter.allow_empty and not occupied and ctx.player_id is not None):
                return False
    elif hex_filter.owner == 'enemy':
        if ctx.player_id is None or not has_enemy_units(hex_obj, ctx.player_id):
            return False
    return _within_distance_filters(
        ctx, hex_obj.key,
        hex_filter.max_distance_from_capital,
        hex_filter.max_distance_from_friendly_champion,
        hex_filter.max_distance_from_friendly_force,
    )


def filtered_hexes(ctx: TargetContext, hex_filter: HexFilter) -> Set[str]:
    return {key for key, hex_obj in ctx.board.hexes.items() if hex_passes_filter(ctx, hex_obj, hex_filter)}


# --- edge / multiEdge ---

def eligible_edges(ctx: TargetContext, spec: EdgeSpec) -> Set[str]:
    """
    Edge keys selectable under an edge spec.

    An edge is eligible when both hexes are on the board and physically
    adjacent, a bridge is present (existing_bridge) or absent (otherwise),
    and, unless the target spec allows 'anywhere', one endpoint holds a friendly
    unit.
    """
    board = ctx.board
    needs_occupied = spec.requires_occupied_endpoint and not spec.anywhere
    edges = set()
    for key, hex_obj in board.hexes.items():
        try:
            neighbors = neighbor_hex_keys(key)
        except HexKeyError:
            continue
        for neighbor in neighbors:
            other = board.get_hex(neighbor)
            if other is None:
                continue
            edge_key = canonical_edge_key(key, neighbor)
            if edge_key in edges:
                continue
            if (edge_key in board.bridges) != spec.existing_bridge:
                continue
            if needs_occupied and not (is_occupied_by_player(hex_obj, ctx.player_id)
                                       or is_occupied_by_player(other, ctx.player_id)):
                continue
            edges.add(edge_key)
    return edges


def edge_endpoints(edge_keys: Sequence[str]) -> Set[str]:
    endpoints = set()
    for edge_key in edge_keys:
        endpoints.update(edge_key.split('|'))
    return endpoints


def edge_candidates(ctx: TargetContext, spec: EdgeSpec, anchor: Optional[str] = None) -> Candidates:
    edges = eligible_edges(ctx, spec)
    start = edge_endpoints(edges)
    if anchor is None or anchor not in start:
        return Candidates(start_hexes=frozenset(start), candidate_edges=frozenset(edges))
    incident = {e for e in edges if anchor in e.split('|')}
    partners = edge_endpoints(incident) - {anchor}
    return Candidates(
        start_hexes=frozenset(start),
        candidate_hexes=frozenset(partners),
        candidate_edges=frozenset(incident),
    )


# --- stack / path / multiPath ---

def _effective_requires_bridge(ctx: TargetContext, origin: str, requires_bridge: bool,
                               force_count: Optional[int], include_champions: Optional[bool]) -> bool:
    if not requires_bridge:
        return False
    return not can_bypass_bridge(origin, force_count, include_champions,
                                 ctx.board, ctx.modifiers, ctx.player_id)


def _legal_steps(ctx: TargetContext, from_hex: str, requires_bridge: bool) -> List[str]:
    return [
        key for key in reachable_neighbors(from_hex, ctx.board, ctx.modifiers, ctx.player_id)
        if can_move_between(from_hex, key, requires_bridge, ctx.board, ctx.modifiers,
                            ctx.player_id, ctx.planned_edges)
    ]


def stack_destinations(ctx: TargetContext, origin: str, requires_bridge: bool = True,
                       force_count: Optional[int] = None,
                       include_champions: Optional[bool] = None) -> List[str]:
    """
    Legal destinations for a stack leaving origin.

    Args:
        ctx: Targeting context
        origin: Hex the stack leaves
        requires_bridge: Whether physical edges need a bridge
        force_count: Forces moving (None moves the whole stack)
        include_champions: Whether champions move with the forces

    Returns:
        Hex keys the stack may step to, empty if nothing would move
    """
    if not select_moving_units(ctx.board, origin, ctx.player_id, force_count, include_champions):
        return []
    need_bridge = _effective_requires_bridge(ctx, origin, requires_bridge, force_count, include_champions)
    return _legal_steps(ctx, origin, need_bridge)


def stack_origins(ctx: TargetContext, spec: StackSpec, force_count: Optional[int] = None,
                  include_champions: Optional[bool] = None) -> Set[str]:
    """Friendly-occupied hexes with at least one legal destination."""
    if ctx.player_id is None:
        return set()
    return {
        key for key, hex_obj in ctx.board.hexes.items()
        if is_occupied_by_player(hex_obj, ctx.player_id)
        and stack_destinations(ctx, key, spec.requires_bridge, force_count, include_champions)
    }


def _move_options(spec: StackSpec, force_count: Optional[int],
                  include_champions: Optional[bool]) -> Tuple[Optional[int], Optional[bool]]:
    """Selection overrides take priority over the target spec's own split."""
    return (
        force_count if force_count is not None else spec.force_count,
        include_champions if include_champions is not None else spec.include_champions,
    )


def stack_candidates(ctx: TargetContext, spec: StackSpec, origin: Optional[str] = None,
                     force_count: Optional[int] = None,
                     include_champions: Optional[bool] = None) -> Candidates:
    force_count, include_champions = _move_options(spec, force_count, include_champions)
    start = stack_origins(ctx, spec, force_count, include_champions)
    if origin is None or origin not in start:
        return Candidates(start_hexes=frozenset(start))
    destinations = stack_destinations(ctx, origin, spec.requires_bridge, force_count, include_champions)
    return Candidates(start_hexes=frozenset(start), candidate_hexes=frozenset(destinations))


def is_stop_hex(ctx: TargetContext, spec: PathSpec, hex_key: str) -> bool:
    """A hex a path may end on but not pass through."""
    hex_obj = ctx.board.get_hex(hex_key)
    if hex_obj is None:
        return True
    if has_enemy_units(hex_obj, ctx.player_id):
        return True
    return spec.stop_on_occupied and bool(hex_obj.player_ids())


def path_extensions(ctx: TargetContext, spec: PathSpec, path: Sequence[str],
                    force_count: Optional[int] = None,
                    include_champions: Optional[bool] = None) -> List[str]:
    """
    Hexes that may be appended to a pending path.

    The path stops growing once it has max_distance steps or its last hex
    (after the origin) is a stop hex. Hexes already on the path are excluded.
    """
    if not path:
        return []
    steps = len(path) - 1
    if spec.max_distance is not None and steps >= spec.max_distance:
        return []
    last = path[-1]
    if steps > 0 and is_stop_hex(ctx, spec, last):
        return []
    force_count, include_champions = _move_options(spec, force_count, include_champions)
    need_bridge = _effective_requires_bridge(ctx, path[0], spec.requires_bridge, force_count, include_champions)
    return [key for key in _legal_steps(ctx, last, need_bridge) if key not in path]


def path_origins(ctx: TargetContext, spec: PathSpec, force_count: Optional[int] = None,
                 include_champions: Optional[bool] = None) -> Set[str]:
    if spec.max_distance is not None and spec.max_distance < 1:
        return set()
    force_count, include_champions = _move_options(spec, force_count, include_champions)
    return stack_origins(ctx, spec, force_count, include_champions)


def path_candidates(ctx: TargetContext, spec: PathSpec, path: Sequence[str] = (),
                    force_count: Optional[int] = None,
                    include_champions: Optional[bool] = None) -> Candidates:
    start = path_origins(ctx, spec, force_count, include_champions)
    if not path or path[0] not in start:
        return Candidates(start_hexes=frozenset(start))
    extensions = path_extensions(ctx, spec, path, force_count, include_champions)
    return Candidates(start_hexes=frozenset(start), candidate_hexes=frozenset(extensions))


def multi_path_candidates(ctx: TargetContext, spec: MultiPathSpec, path: Sequence[str] = (),
                          committed: Sequence[Sequence[str]] = (),
                          force_count: Optional[int] = None,
                          include_champions: Optional[bool] = None) -> Candidates:
    used = {p[0] for p in committed if p}
    start = path_origins(ctx, spec, force_count, include_champions) - used
    if not path or path[0] not in start:
        return Candidates(start_hexes=frozenset(start))
    extensions = path_extensions(ctx, spec, path, force_count, include_champions)
    return Candidates(start_hexes=frozenset(start), candidate_hexes=frozenset(extensions))


# --- hex / hexPair ---

def hex_candidates(ctx: TargetContext, spec: HexSpec) -> Candidates:
    keys = frozenset(filtered_hexes(ctx, spec.filter))
    return Candidates(start_hexes=keys, candidate_hexes=keys)


def hex_pair_candidates(ctx: TargetContext, spec: HexPairSpec) -> Candidates:
    # The anchor stays selectable so re-picking it can cancel or pair with itself
    keys = frozenset(filtered_hexes(ctx, spec.filter))
    return Candidates(start_hexes=keys, candidate_hexes=keys)


# --- champion ---

def eligible_champions(ctx: TargetContext, spec: ChampionSpec) -> List[Unit]:
    """
    Champions passing the owner and distance filters, sorted by unit id.

    Enemy champions under a 'ward' modifier cannot be targeted.
    """
    champions = []
    for unit in ctx.board.units.values():
        if not unit.is_champion or ctx.board.get_hex(unit.hex) is None:
            continue
        if not owner_matches(spec.owner, unit.owner_player_id, ctx.player_id):
            continue
        if unit.owner_player_id != ctx.player_id and is_champion_warded(unit, ctx.modifiers):
            continue
        if not _within_distance_filters(ctx, unit.hex, spec.max_distance_from_capital,
                                        spec.max_distance_from_friendly_champion,
                                        spec.max_distance_from_friendly_force):
            continue
        champions.append(unit)
    return sorted(champions, key=lambda u: u.id)


def champions_on_hex(ctx: TargetContext, spec: ChampionSpec, hex_key: str) -> List[str]:
    """Eligible champion ids on one hex, in cycling order."""
    return [u.id for u in eligible_champions(ctx, spec) if u.hex == hex_key]


def champion_candidates(ctx: TargetContext, spec: ChampionSpec) -> Candidates:
    keys = frozenset(u.hex for u in eligible_champions(ctx, spec))
    return Candidates(start_hexes=keys, candidate_hexes=keys)


# --- choice ---

def choice_option_hexes(ctx: TargetContext, option: ChoiceOption) -> Set[str]:
    if option.kind == 'capital':
        capital = get_capital_hex(ctx.board, ctx.capitals, ctx.player_id)
        return {capital} if capital is not None else set()
    return filtered_hexes(ctx, HexFilter(owner=option.owner, occupancy='occupied'))


def resolve_choice(ctx: TargetContext, spec: ChoiceSpec, hex_key: str) -> Optional[ChoiceOption]:
    """The first option (capital before occupiedHex) whose hex set holds hex_key."""
    ordered = sorted(spec.options, key=lambda o: 0 if o.kind == 'capital' else 1)
    for option in ordered:
        if hex_key in choice_option_hexes(ctx, option):
            return option
    return None


def choice_candidates(ctx: TargetContext, spec: ChoiceSpec) -> Candidates:
    keys: Set[str] = set()
    for option in spec.options:
        keys |= choice_option_hexes(ctx, option)
    return Candidates(start_hexes=frozenset(keys), candidate_hexes=frozenset(keys))


# --- player ---

def eligible_players(ctx: TargetContext, spec: PlayerSpec) -> List[str]:
    """Seat-ordered player ids passing the owner filter."""
    return [pid for pid in ctx.player_ids if owner_matches(spec.owner, pid, ctx.player_id)]


# --- Dispatch ---

RuleFn = Callable[[TargetContext, TargetSpec, Optional['SelectionState']], Candidates]


def _edge_rule(ctx, spec, selection):
    return edge_candidates(ctx, spec, anchor=selection.edge_anchor if selection else None)


def _stack_rule(ctx, spec, selection):
    if selection is None:
        return stack_candidates(ctx, spec)
    return stack_candidates(ctx, spec, selection.stack_origin,
                            selection.force_count, selection.include_champions)


def _path_rule(ctx, spec, selection):
    if selection is None:
        return path_candidates(ctx, spec)
    return path_candidates(ctx, spec, selection.path, selection.force_count, selection.include_champions)


def _multi_path_rule(ctx, spec, selection):
    if selection is None:
        return multi_path_candidates(ctx, spec)
    return multi_path_candidates(ctx, spec, selection.path, selection.paths,
                                 selection.force_count, selection.include_champions)


def _no_board_rule(ctx, spec, selection):
    return Candidates.empty()


RULES: Dict[TargetKind, RuleFn] = {
    TargetKind.EDGE: _edge_rule,
    TargetKind.MULTI_EDGE: _edge_rule,
    TargetKind.STACK: _stack_rule,
    TargetKind.PATH: _path_rule,
    TargetKind.MULTI_PATH: _multi_path_rule,
    TargetKind.HEX: lambda ctx, spec, selection: hex_candidates(ctx, spec),
    TargetKind.HEX_PAIR: lambda ctx, spec, selection: hex_pair_candidates(ctx, spec),
    TargetKind.CHAMPION: lambda ctx, spec, selection: champion_candidates(ctx, spec),
    TargetKind.CHOICE: lambda ctx, spec, selection: choice_candidates(ctx, spec),
    TargetKind.PLAYER: _no_board_rule,
    TargetKind.NONE: _no_board_rule,
}


def compute_candidates(ctx: TargetContext, spec: Optional[TargetSpec],
                       selection: Optional['SelectionState'] = None) -> Candidates:
    """
    Candidate sets for a spec and the pending parts of a selection.

    Args:
        ctx: Targeting context (board, modifiers, local player, lookup tables)
        spec: TargetSpec variant, or None
        selection: In-progress selection; must be for the same kind as spec

    Returns:
        Candidates; empty when the target spec is missing or unknown, or when the
        selection belongs to a different kind
    """
    rule = RULES.get(getattr(spec, 'kind', None))
    if rule is None:
        return Candidates.empty()
    if selection is not None and (selection.spec is None or selection.spec.kind != spec.kind):
        return Candidates.empty()
    try:
        return rule(ctx, spec, selection)
    except (ValueError, TypeError, KeyError) as e:
        logger.debug("Candidate computation failed for %s: %s", spec.kind.value, e)
        return Candidates.empty()
