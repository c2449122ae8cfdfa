"""
Selection state machine for in-progress target picks.

SelectionState is an immutable value. Every transition (pick_hex, pick_edge,
pick_player, pick_choice, set_move_options, cancel_selection) takes a state
and returns a new one; an illegal pick returns the same state object. The
payload is set whenever the pending picks satisfy the kind's constraints and
cleared otherwise.
"""

import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Iterable, Optional, Sequence, Tuple

from map_gen import HexKeyError, canonical_edge_key, parse_edge_key, parse_hex_key
from models import Candidates, TargetContext
from payloads import (ChampionPayload, ChoicePayload, EdgePayload, HexPairPayload, HexPayload,
                      MultiEdgePayload, MultiPathPayload, NonePayload, PathPayload, PlayerPayload,
                      StackPayload, TargetPayload, build_payload)
from queries import get_capital_hex
from state import load_config
from target_rules import (champions_on_hex, compute_candidates, edge_candidates, eligible_edges,
                          eligible_players, filtered_hexes, path_extensions, path_origins,
                          resolve_choice, stack_candidates, stack_destinations)
from target_specs import NoneSpec, TargetKind, TargetSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectionState:
    """
    Client-local accumulator for one target pick.

    Only the fields used by the active kind are ever set: edge_anchor for
    edge kinds, stack_origin for stacks, path and paths for path kinds,
    pair_first for hex pairs, and champion_hex/champion_index for champion
    cycling. force_count and include_champions override the target spec's split
    for stack moves.
    """
    spec: Optional[TargetSpec] = None
    edge_anchor: Optional[str] = None
    edges: Tuple[str, ...] = ()  # multiEdge picks, oldest first
    stack_origin: Optional[str] = None
    path: Tuple[str, ...] = ()  # Active path
    paths: Tuple[Tuple[str, ...], ...] = ()  # Committed multiPath paths
    pair_first: Optional[str] = None
    champion_hex: Optional[str] = None
    champion_index: int = -1
    force_count: Optional[int] = None
    include_champions: Optional[bool] = None
    payload: Optional[TargetPayload] = None

    @property
    def kind(self) -> Optional[TargetKind]:
        return self.spec.kind if self.spec is not None else None

    @property
    def is_complete(self) -> bool:
        return self.payload is not None

    def to_dict(self) -> Dict[str, Any]:
        """Wire view of the selection for API responses."""
        return {
            'kind': self.kind.value if self.kind else None,
            'edgeAnchor': self.edge_anchor,
            'edges': list(self.edges),
            'stackOrigin': self.stack_origin,
            'path': list(self.path),
            'paths': [list(p) for p in self.paths],
            'pairFirst': self.pair_first,
            'championHex': self.champion_hex,
            'complete': self.is_complete,
            'payload': self.payload.to_dict() if self.payload is not None else None,
        }


def begin_selection(spec: Optional[TargetSpec]) -> SelectionState:
    """Fresh selection for a spec; kind 'none' is complete at once."""
    if isinstance(spec, NoneSpec):
        return SelectionState(spec=spec, payload=NonePayload())
    return SelectionState(spec=spec)


def clear_selection() -> SelectionState:
    """Selection with no active spec, used when the card or action is deselected."""
    return SelectionState()


def cancel_selection(state: SelectionState) -> SelectionState:
    """Drop every pending pick and the payload, keeping the active kind."""
    return begin_selection(state.spec)


def candidates_for(state: SelectionState, ctx: TargetContext) -> Candidates:
    return compute_candidates(ctx, state.spec, state)


def _move_options(state: SelectionState) -> Tuple[Optional[int], Optional[bool]]:
    spec = state.spec
    force_count = state.force_count if state.force_count is not None else spec.force_count
    include = state.include_champions if state.include_champions is not None else spec.include_champions
    return force_count, include


# --- edge / multiEdge ---

def _multi_edge_payload(state: SelectionState, edges: Tuple[str, ...]) -> Optional[TargetPayload]:
    spec = state.spec
    if not spec.min_edges <= len(edges) <= spec.max_edges or not edges:
        return None
    return build_payload(MultiEdgePayload, edges)


def _apply_edge(state: SelectionState, edge_key: str) -> SelectionState:
    if state.kind == TargetKind.EDGE:
        return replace(state, edge_anchor=None, payload=build_payload(EdgePayload, edge_key))
    if edge_key in state.edges:
        edges = tuple(e for e in state.edges if e != edge_key)
    else:
        edges = state.edges + (edge_key,)
        # Oldest picks are evicted first
        edges = edges[max(0, len(edges) - state.spec.max_edges):]
    return replace(state, edge_anchor=None, edges=edges, payload=_multi_edge_payload(state, edges))


def _pending_edge_payload(state: SelectionState) -> Optional[TargetPayload]:
    if state.kind == TargetKind.MULTI_EDGE:
        return _multi_edge_payload(state, state.edges)
    return None


def _pick_edge_hex(state: SelectionState, ctx: TargetContext, hex_key: str) -> SelectionState:
    anchor = state.edge_anchor
    candidates = edge_candidates(ctx, state.spec, anchor)
    if anchor is not None and hex_key == anchor:
        return replace(state, edge_anchor=None, payload=_pending_edge_payload(state))
    if anchor is not None and hex_key in candidates.candidate_hexes:
        return _apply_edge(state, canonical_edge_key(anchor, hex_key))
    if hex_key in candidates.start_hexes:
        return replace(state, edge_anchor=hex_key, payload=_pending_edge_payload(state))
    return state


# --- stack ---

def _pick_stack_hex(state: SelectionState, ctx: TargetContext, hex_key: str) -> SelectionState:
    force_count, include = _move_options(state)
    origin = state.stack_origin
    candidates = stack_candidates(ctx, state.spec, origin, force_count, include)
    if origin is not None and hex_key == origin:
        return replace(state, stack_origin=None, payload=None)
    if origin is not None and hex_key in candidates.candidate_hexes:
        payload = build_payload(StackPayload, origin, hex_key, force_count, include)
        return replace(state, payload=payload)
    if hex_key in candidates.start_hexes:
        return replace(state, stack_origin=hex_key, payload=None)
    return state


# --- path / multiPath ---

def _truncate_path(path: Tuple[str, ...], hex_key: str) -> Tuple[str, ...]:
    index = path.index(hex_key)
    if index == 0 and len(path) == 1:
        return ()
    return path[:index + 1]


def _path_payload(path: Tuple[str, ...]) -> Optional[TargetPayload]:
    return build_payload(PathPayload, path) if len(path) >= 2 else None


def _pick_path_hex(state: SelectionState, ctx: TargetContext, hex_key: str) -> SelectionState:
    force_count, include = _move_options(state)
    path = state.path
    if path and hex_key in path:
        path = _truncate_path(path, hex_key)
        return replace(state, path=path, payload=_path_payload(path))
    if path and hex_key in path_extensions(ctx, state.spec, path, force_count, include):
        path = path + (hex_key,)
        return replace(state, path=path, payload=_path_payload(path))
    if hex_key in path_origins(ctx, state.spec, force_count, include):
        return replace(state, path=(hex_key,), payload=None)
    return state


def _multi_path_payload(state: SelectionState, path: Tuple[str, ...],
                        paths: Tuple[Tuple[str, ...], ...]) -> Optional[TargetPayload]:
    spec = state.spec
    chosen = paths + ((path,) if len(path) >= 2 else ())
    if not chosen or not spec.min_paths <= len(chosen) <= spec.max_paths:
        return None
    return build_payload(MultiPathPayload, chosen)


def _pick_multi_path_hex(state: SelectionState, ctx: TargetContext, hex_key: str) -> SelectionState:
    force_count, include = _move_options(state)
    path, paths = state.path, state.paths
    if path and hex_key in path:
        path = _truncate_path(path, hex_key)
        return replace(state, path=path, payload=_multi_path_payload(state, path, paths))
    if path and hex_key in path_extensions(ctx, state.spec, path, force_count, include):
        path = path + (hex_key,)
        return replace(state, path=path, payload=_multi_path_payload(state, path, paths))
    used = {p[0] for p in paths}
    if hex_key in used or hex_key not in path_origins(ctx, state.spec, force_count, include):
        return state
    if len(path) >= 2:
        paths = paths + (path,)
        if len(paths) >= state.spec.max_paths:
            # The new path takes the place of the most recently committed one
            paths = paths[:-1]
    path = (hex_key,)
    return replace(state, path=path, paths=paths, payload=_multi_path_payload(state, path, paths))


# --- hex / hexPair / champion / choice ---

def _pick_single_hex(state: SelectionState, ctx: TargetContext, hex_key: str) -> SelectionState:
    if hex_key not in filtered_hexes(ctx, state.spec.filter):
        return state
    return replace(state, payload=build_payload(HexPayload, hex_key))


def _pick_pair_hex(state: SelectionState, ctx: TargetContext, hex_key: str) -> SelectionState:
    if hex_key not in filtered_hexes(ctx, state.spec.filter):
        return state
    first = state.pair_first
    if first is None or state.payload is not None:
        return replace(state, pair_first=hex_key, payload=None)
    if hex_key == first and not state.spec.allow_same:
        return replace(state, pair_first=None, payload=None)
    return replace(state, payload=build_payload(HexPairPayload, first, hex_key))


def _pick_champion_hex(state: SelectionState, ctx: TargetContext, hex_key: str) -> SelectionState:
    unit_ids = champions_on_hex(ctx, state.spec, hex_key)
    if not unit_ids:
        return state
    index = 0
    if state.champion_hex == hex_key:
        index = (state.champion_index + 1) % len(unit_ids)
    return replace(state, champion_hex=hex_key, champion_index=index,
                   payload=build_payload(ChampionPayload, unit_ids[index]))


def _choice_payload(choice: str, hex_key: Optional[str]) -> Optional[TargetPayload]:
    if choice == 'capital':
        return build_payload(ChoicePayload, 'capital')
    return build_payload(ChoicePayload, choice, hex_key)


def _pick_choice_hex(state: SelectionState, ctx: TargetContext, hex_key: str) -> SelectionState:
    option = resolve_choice(ctx, state.spec, hex_key)
    if option is None:
        return state
    return replace(state, payload=_choice_payload(option.kind, hex_key))


HEX_PICKERS: Dict[TargetKind, Callable[[SelectionState, TargetContext, str], SelectionState]] = {
    TargetKind.EDGE: _pick_edge_hex,
    TargetKind.MULTI_EDGE: _pick_edge_hex,
    TargetKind.STACK: _pick_stack_hex,
    TargetKind.PATH: _pick_path_hex,
    TargetKind.MULTI_PATH: _pick_multi_path_hex,
    TargetKind.HEX: _pick_single_hex,
    TargetKind.HEX_PAIR: _pick_pair_hex,
    TargetKind.CHAMPION: _pick_champion_hex,
    TargetKind.CHOICE: _pick_choice_hex,
}


def pick_hex(state: SelectionState, ctx: TargetContext, hex_key: str) -> SelectionState:
    """
    Apply a click on a hex to the selection.

    Args:
        state: Current selection
        ctx: Targeting context for the current board snapshot
        hex_key: Clicked hex

    Returns:
        New SelectionState, or state itself if the click is not legal
    """
    picker = HEX_PICKERS.get(state.kind)
    if picker is None or ctx.board.get_hex(hex_key) is None:
        logger.debug("Ignored hex pick %r for kind %s", hex_key, state.kind)
        return state
    try:
        parse_hex_key(hex_key)
        return picker(state, ctx, hex_key)
    except (ValueError, TypeError, KeyError) as e:
        logger.debug("Rejected hex pick %r: %s", hex_key, e)
        return state


def pick_edge(state: SelectionState, ctx: TargetContext, edge_key: str) -> SelectionState:
    """Apply a click on an edge; only edge kinds accept edge picks."""
    if state.kind not in (TargetKind.EDGE, TargetKind.MULTI_EDGE):
        return state
    try:
        edge_key = canonical_edge_key(*parse_edge_key(edge_key))
    except HexKeyError as e:
        logger.debug("Rejected edge pick %r: %s", edge_key, e)
        return state
    if edge_key not in eligible_edges(ctx, state.spec):
        return state
    return _apply_edge(state, edge_key)


def pick_player(state: SelectionState, ctx: TargetContext, player_id: str) -> SelectionState:
    if state.kind != TargetKind.PLAYER or player_id not in eligible_players(ctx, state.spec):
        return state
    return replace(state, payload=build_payload(PlayerPayload, player_id))


def pick_choice(state: SelectionState, ctx: TargetContext, choice: str,
                hex_key: Optional[str] = None) -> SelectionState:
    """
    Choose a choice option by tag, e.g. from a 'Reinforce capital' button.

    The capital option needs no hex; occupiedHex needs an eligible hex_key.
    """
    if state.kind != TargetKind.CHOICE:
        return state
    if choice == 'capital' and hex_key is None:
        hex_key = get_capital_hex(ctx.board, ctx.capitals, ctx.player_id)
    if hex_key is None:
        return state
    option = resolve_choice(ctx, state.spec, hex_key)
    if option is None or option.kind != choice:
        return state
    return replace(state, payload=_choice_payload(choice, hex_key))


def _replay_path(state: SelectionState, ctx: TargetContext, path: Sequence[str]) -> Tuple[str, ...]:
    """Longest prefix of path that is still legal under the state's move options."""
    force_count, include = _move_options(state)
    if not path or path[0] not in path_origins(ctx, state.spec, force_count, include):
        return ()
    kept: Tuple[str, ...] = (path[0],)
    for hex_key in path[1:]:
        if hex_key not in path_extensions(ctx, state.spec, kept, force_count, include):
            break
        kept = kept + (hex_key,)
    return kept


def set_move_options(state: SelectionState, ctx: TargetContext, force_count: Optional[int] = None,
                     include_champions: Optional[bool] = None) -> SelectionState:
    """
    Change how many forces and whether champions move, then re-finalize.

    A stack keeps its origin and destination when the new split can still
    make the move; paths keep their longest prefix that remains legal.
    """
    if state.kind not in (TargetKind.STACK, TargetKind.PATH, TargetKind.MULTI_PATH):
        return state
    if force_count is not None and (isinstance(force_count, bool) or not isinstance(force_count, int)
                                    or force_count < 0):
        return state
    state = replace(state, force_count=force_count, include_champions=include_champions)
    new_force_count, include = _move_options(state)

    if state.kind == TargetKind.STACK:
        origin = state.stack_origin
        if origin is None:
            return replace(state, payload=None)
        destinations = stack_destinations(ctx, origin, state.spec.requires_bridge, new_force_count, include)
        if not destinations:
            return replace(state, stack_origin=None, payload=None)
        payload = None
        if state.payload is not None and state.payload.to_hex in destinations:
            payload = build_payload(StackPayload, origin, state.payload.to_hex, new_force_count, include)
        return replace(state, payload=payload)

    if state.kind == TargetKind.PATH:
        path = _replay_path(state, ctx, state.path)
        return replace(state, path=path, payload=_path_payload(path))

    paths = tuple(p for p in (_replay_path(state, ctx, p) for p in state.paths) if len(p) >= 2)
    path = _replay_path(state, ctx, state.path)
    return replace(state, path=path, paths=paths, payload=_multi_path_payload(state, path, paths))


# --- Reset triggers ---

@dataclass(frozen=True)
class UiSignals:
    """The UI facts that decide whether a pending selection survives."""
    selected_id: Optional[str] = None  # Selected card instance or basic action
    phase: Optional[str] = None
    round_index: Optional[int] = None


def reset_reason(previous: UiSignals, current: UiSignals,
                 interactive_phases: Iterable[str]) -> Optional[str]:
    """
    Why a pending selection must be cleared between two UI observations.

    Returns:
        'deselected', 'phaseEnded', 'roundAdvanced', or None to keep it
    """
    phases = set(interactive_phases)
    if previous.selected_id is not None and current.selected_id != previous.selected_id:
        return 'deselected'
    if previous.phase in phases and current.phase not in phases:
        return 'phaseEnded'
    if previous.round_index is not None and current.round_index != previous.round_index:
        return 'roundAdvanced'
    return None


class SelectionTracker:
    """
    Holds the current SelectionState for one client and applies the mandatory
    reset triggers as UI signals change.
    """

    def __init__(self, interactive_phases: Optional[Iterable[str]] = None):
        if interactive_phases is None:
            interactive_phases = load_config().get('interactive_phases', ['round.action'])
        self.interactive_phases = tuple(interactive_phases)
        self.signals = UiSignals()
        self.state = clear_selection()

    def select(self, selected_id: str, spec: Optional[TargetSpec]) -> SelectionState:
        """Start a selection for a newly chosen card or basic action."""
        self.signals = replace(self.signals, selected_id=selected_id)
        self.state = begin_selection(spec)
        return self.state

    def observe(self, selected_id: Optional[str], phase: Optional[str],
                round_index: Optional[int]) -> Optional[str]:
        """
        Record new UI signals, clearing the selection on a reset trigger.

        Returns:
            The reset reason, or None if the selection was kept
        """
        current = UiSignals(selected_id=selected_id, phase=phase, round_index=round_index)
        reason = reset_reason(self.signals, current, self.interactive_phases)
        self.signals = current
        if reason == 'deselected':
            self.state = clear_selection()
        elif reason is not None:
            self.state = cancel_selection(self.state)
        if reason is not None:
            logger.debug("Selection reset: %s", reason)
        return reason

    def apply(self, transition: Callable[..., SelectionState], *args, **kwargs) -> SelectionState:
        """Run a reducer such as pick_hex against the held state."""
        self.state = transition(self.state, *args, **kwargs)
        return self.state
