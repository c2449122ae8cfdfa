# Models for the board snapshot consumed by the targeting layer

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Tuple


@dataclass(frozen=True)
class Hex:
    """One cell of the board, keyed by its axial coordinate string."""
    key: str  # Hex key "q,r"
    tile: str = 'normal'  # 'normal', 'capital', 'forge', 'mine' or 'center'
    occupants: Dict[str, Tuple[str, ...]] = field(default_factory=dict)  # Owner id -> unit ids
    owner_player_id: Optional[str] = None  # Capital owner, if any
    mine_value: Optional[int] = None

    def player_ids(self) -> List[str]:
        """Owners with at least one unit on this hex, in occupant order."""
        return [player_id for player_id, unit_ids in self.occupants.items() if unit_ids]


@dataclass(frozen=True)
class Bridge:
    """A built connection across one physical hex edge."""
    key: str  # Canonical edge key "a|b"
    from_hex: str
    to_hex: str
    owner_player_id: Optional[str] = None
    temporary: bool = False
    locked: bool = False


@dataclass(frozen=True)
class Unit:
    """
    A force or champion token on a hex.
    Champions carry hit points and the card definition they were played from.
    """
    id: str
    kind: str  # 'force' or 'champion'
    owner_player_id: str
    hex: str
    card_def_id: Optional[str] = None
    hp: Optional[int] = None
    max_hp: Optional[int] = None

    @property
    def is_champion(self) -> bool:
        return self.kind == 'champion'


@dataclass(frozen=True)
class Modifier:
    """
    Ephemeral rule override published by the authoritative engine.

    Only a handful of kinds change targeting: 'link' (virtual adjacency between
    two hexes), 'bridge_bypass' (a champion may cross un-bridged edges),
    'bridge_lock' (an edge cannot be crossed) and 'ward' (a champion cannot be
    targeted by enemies). Every other kind is carried through and ignored.
    """
    id: str
    kind: str
    owner_player_id: Optional[str] = None
    attached_hex: Optional[str] = None
    attached_edge: Optional[str] = None
    attached_unit_id: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    def applies_to(self, player_id: Optional[str]) -> bool:
        """Ownerless modifiers apply to everyone; owned ones only to their owner."""
        return self.owner_player_id is None or self.owner_player_id == player_id

    def link_endpoints(self) -> Optional[Tuple[str, str]]:
        """The two hex keys joined by a 'link' modifier, if well-formed."""
        if self.kind != 'link':
            return None
        link = self.data.get('link')
        if not isinstance(link, dict):
            return None
        a, b = link.get('from'), link.get('to')
        if not isinstance(a, str) or not isinstance(b, str) or not a or not b:
            return None
        return a, b

    def unit_id(self) -> Optional[str]:
        """The unit a unit-scoped modifier is attached to."""
        if self.attached_unit_id:
            return self.attached_unit_id
        unit_id = self.data.get('unitId')
        return unit_id if isinstance(unit_id, str) and unit_id else None


@dataclass(frozen=True)
class Board:
    """
    Immutable board snapshot at one revision.
    Replaced wholesale on every authoritative update, never mutated in place.
    """
    hexes: Dict[str, Hex] = field(default_factory=dict)
    bridges: Dict[str, Bridge] = field(default_factory=dict)
    units: Dict[str, Unit] = field(default_factory=dict)
    radius: int = 0

    def get_hex(self, key: Any) -> Optional[Hex]:
        if not isinstance(key, str):
            return None
        return self.hexes.get(key)

    def units_on_hex(self, key: str, player_id: Optional[str] = None) -> List[Unit]:
        """Units listed as occupants of a hex, optionally for one owner only."""
        hex_obj = self.get_hex(key)
        if hex_obj is None:
            return []
        owners = [player_id] if player_id is not None else list(hex_obj.occupants)
        units = []
        for owner in owners:
            for unit_id in hex_obj.occupants.get(owner, ()):
                unit = self.units.get(unit_id)
                if unit is not None:
                    units.append(unit)
        return units


@dataclass(frozen=True)
class TargetContext:
    """
    Read-only inputs shared by every candidate computation.

    capitals is a player id -> capital hex lookup table built once per
    snapshot; planned_edges holds edges being built by the same compound
    action, which count as bridges for movement.
    """
    board: Board
    modifiers: Tuple[Modifier, ...] = ()
    player_id: Optional[str] = None  # None for spectators
    player_ids: Tuple[str, ...] = ()  # Seat order
    capitals: Dict[str, str] = field(default_factory=dict)
    planned_edges: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class Candidates:
    """Selectable board elements for one recomputation, used for highlighting."""
    start_hexes: FrozenSet[str] = frozenset()
    candidate_hexes: FrozenSet[str] = frozenset()
    candidate_edges: FrozenSet[str] = frozenset()

    @classmethod
    def empty(cls) -> 'Candidates':
        return cls()

    def is_empty(self) -> bool:
        return not (self.start_hexes or self.candidate_hexes or self.candidate_edges)

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            'startHexes': sorted(self.start_hexes),
            'candidateHexes': sorted(self.candidate_hexes),
            'candidateEdges': sorted(self.candidate_edges),
        }
