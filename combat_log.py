"""
Combat replay extraction from the append-only game event log.

extract_combat_sequences walks the log once with three states: idle,
accumulating (after a parseable combat.start) and closing (on combat.end).
Unparseable rounds are dropped; an unparseable start or end discards only the
combat in progress. Sequence ids depend only on the start event, so running
the extractor again over a longer log reproduces every earlier sequence.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

logger = logging.getLogger(__name__)

Number = Union[int, float]

COMBAT_START = 'combat.start'
COMBAT_ROUND = 'combat.round'
COMBAT_END = 'combat.end'


@dataclass(frozen=True)
class DiceRoll:
    value: Number
    is_hit: bool

    def to_dict(self) -> Dict[str, Any]:
        return {'value': self.value, 'isHit': self.is_hit}


@dataclass(frozen=True)
class UnitRoll:
    """Dice rolled by one unit in a round; champion fields are set for champions only."""
    unit_id: str
    kind: str
    attack_dice: Number = 0
    hit_faces: Number = 0
    dice: Tuple[DiceRoll, ...] = ()
    card_def_id: Optional[str] = None
    hp: Optional[Number] = None
    max_hp: Optional[Number] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            'unitId': self.unit_id,
            'kind': self.kind,
            'attackDice': self.attack_dice,
            'hitFaces': self.hit_faces,
            'dice': [d.to_dict() for d in self.dice],
        }
        if self.card_def_id is not None:
            result['cardDefId'] = self.card_def_id
        if self.hp is not None:
            result['hp'] = self.hp
        if self.max_hp is not None:
            result['maxHp'] = self.max_hp
        return result


@dataclass(frozen=True)
class SideRoll:
    player_id: str
    hits: Number = 0
    dice: Tuple[DiceRoll, ...] = ()
    units: Tuple[UnitRoll, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            'playerId': self.player_id,
            'hits': self.hits,
            'dice': [d.to_dict() for d in self.dice],
        }
        if self.units:
            result['units'] = [u.to_dict() for u in self.units]
        return result


@dataclass(frozen=True)
class ChampionHits:
    unit_id: str
    card_def_id: str
    hits: Number
    hp: Number
    max_hp: Number

    def to_dict(self) -> Dict[str, Any]:
        return {'unitId': self.unit_id, 'cardDefId': self.card_def_id, 'hits': self.hits,
                'hp': self.hp, 'maxHp': self.max_hp}


@dataclass(frozen=True)
class HitAssignment:
    """Hits one side absorbed: forces removed plus per-champion damage."""
    forces: Number = 0
    champions: Tuple[ChampionHits, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {'forces': self.forces, 'champions': [c.to_dict() for c in self.champions]}


@dataclass(frozen=True)
class SideSummary:
    player_id: str
    forces: Number = 0
    champions: Number = 0
    total: Number = 0

    def to_dict(self) -> Dict[str, Any]:
        return {'playerId': self.player_id, 'forces': self.forces,
                'champions': self.champions, 'total': self.total}


@dataclass(frozen=True)
class CombatStart:
    hex_key: str
    attackers: SideSummary
    defenders: SideSummary

    def to_dict(self) -> Dict[str, Any]:
        return {'hexKey': self.hex_key, 'attackers': self.attackers.to_dict(),
                'defenders': self.defenders.to_dict()}


@dataclass(frozen=True)
class CombatRound:
    hex_key: str
    round: Number
    attackers: SideRoll
    defenders: SideRoll
    hits_to_attackers: HitAssignment = field(default_factory=HitAssignment)
    hits_to_defenders: HitAssignment = field(default_factory=HitAssignment)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'hexKey': self.hex_key,
            'round': self.round,
            'attackers': self.attackers.to_dict(),
            'defenders': self.defenders.to_dict(),
            'hitsToAttackers': self.hits_to_attackers.to_dict(),
            'hitsToDefenders': self.hits_to_defenders.to_dict(),
        }


@dataclass(frozen=True)
class CombatEnd:
    hex_key: str
    attackers: SideSummary
    defenders: SideSummary
    reason: Optional[str] = None
    winner_player_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'hexKey': self.hex_key,
            'reason': self.reason,
            'winnerPlayerId': self.winner_player_id,
            'attackers': self.attackers.to_dict(),
            'defenders': self.defenders.to_dict(),
        }


@dataclass(frozen=True)
class CombatSequence:
    id: str  # "{startHex}-{startIndex}"
    start_index: int
    end_index: int
    start: CombatStart
    rounds: Tuple[CombatRound, ...]
    end: CombatEnd

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'startIndex': self.start_index,
            'endIndex': self.end_index,
            'start': self.start.to_dict(),
            'rounds': [r.to_dict() for r in self.rounds],
            'end': self.end.to_dict(),
        }


# --- Field readers ---

def _read_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _read_number(value: Any) -> Optional[Number]:
    # JSON booleans decode to bool, which is an int subclass
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def _read_bool(value: Any) -> Optional[bool]:
    return value if isinstance(value, bool) else None


def _read_record(value: Any) -> Optional[Dict[str, Any]]:
    return value if isinstance(value, dict) else None


def _read_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _number_or(value: Any, default: Number) -> Number:
    number = _read_number(value)
    return default if number is None else number


# --- Parsers ---

def parse_dice(value: Any) -> Tuple[DiceRoll, ...]:
    rolls = []
    for entry in _read_list(value):
        record = _read_record(entry) or {}
        roll_value = _read_number(record.get('value'))
        is_hit = _read_bool(record.get('isHit'))
        if roll_value is None or is_hit is None:
            continue
        rolls.append(DiceRoll(value=roll_value, is_hit=is_hit))
    return tuple(rolls)


def parse_unit_rolls(value: Any) -> Tuple[UnitRoll, ...]:
    units = []
    for entry in _read_list(value):
        record = _read_record(entry) or {}
        unit_id = _read_str(record.get('unitId'))
        kind = record.get('kind')
        if not unit_id or kind not in ('force', 'champion'):
            continue
        champion = kind == 'champion'
        units.append(UnitRoll(
            unit_id=unit_id,
            kind=kind,
            attack_dice=_number_or(record.get('attackDice'), 0),
            hit_faces=_number_or(record.get('hitFaces'), 0),
            dice=parse_dice(record.get('dice')),
            card_def_id=(_read_str(record.get('cardDefId')) or None) if champion else None,
            hp=_read_number(record.get('hp')) if champion else None,
            max_hp=_read_number(record.get('maxHp')) if champion else None,
        ))
    return tuple(units)


def parse_side_summary(value: Any) -> Optional[SideSummary]:
    record = _read_record(value) or {}
    player_id = _read_str(record.get('playerId'))
    if not player_id:
        return None
    forces = _number_or(record.get('forces'), 0)
    champions = _number_or(record.get('champions'), 0)
    return SideSummary(
        player_id=player_id,
        forces=forces,
        champions=champions,
        total=_number_or(record.get('total'), forces + champions),
    )


def parse_side_roll(value: Any) -> Optional[SideRoll]:
    record = _read_record(value) or {}
    player_id = _read_str(record.get('playerId'))
    if not player_id:
        return None
    return SideRoll(
        player_id=player_id,
        hits=_number_or(record.get('hits'), 0),
        dice=parse_dice(record.get('dice')),
        units=parse_unit_rolls(record.get('units')),
    )


def parse_hit_assignment(value: Any) -> HitAssignment:
    record = _read_record(value) or {}
    champions = []
    for entry in _read_list(record.get('champions')):
        item = _read_record(entry) or {}
        unit_id = _read_str(item.get('unitId'))
        card_def_id = _read_str(item.get('cardDefId'))
        hits = _read_number(item.get('hits'))
        hp = _read_number(item.get('hp'))
        max_hp = _read_number(item.get('maxHp'))
        if not unit_id or not card_def_id or hits is None or hp is None or max_hp is None:
            continue
        champions.append(ChampionHits(unit_id=unit_id, card_def_id=card_def_id,
                                      hits=hits, hp=hp, max_hp=max_hp))
    return HitAssignment(forces=_number_or(record.get('forces'), 0), champions=tuple(champions))


def _payload(event: Dict[str, Any]) -> Dict[str, Any]:
    return _read_record(event.get('payload')) or {}


def parse_combat_start(event: Dict[str, Any]) -> Optional[CombatStart]:
    payload = _payload(event)
    hex_key = _read_str(payload.get('hexKey'))
    attackers = parse_side_summary(payload.get('attackers'))
    defenders = parse_side_summary(payload.get('defenders'))
    if not hex_key or attackers is None or defenders is None:
        return None
    return CombatStart(hex_key=hex_key, attackers=attackers, defenders=defenders)


def parse_combat_round(event: Dict[str, Any]) -> Optional[CombatRound]:
    payload = _payload(event)
    hex_key = _read_str(payload.get('hexKey'))
    round_number = _read_number(payload.get('round'))
    attackers = parse_side_roll(payload.get('attackers'))
    defenders = parse_side_roll(payload.get('defenders'))
    if not hex_key or round_number is None or attackers is None or defenders is None:
        return None
    return CombatRound(
        hex_key=hex_key,
        round=round_number,
        attackers=attackers,
        defenders=defenders,
        hits_to_attackers=parse_hit_assignment(payload.get('hitsToAttackers')),
        hits_to_defenders=parse_hit_assignment(payload.get('hitsToDefenders')),
    )


def parse_combat_end(event: Dict[str, Any]) -> Optional[CombatEnd]:
    payload = _payload(event)
    hex_key = _read_str(payload.get('hexKey'))
    attackers = parse_side_summary(payload.get('attackers'))
    defenders = parse_side_summary(payload.get('defenders'))
    if not hex_key or attackers is None or defenders is None:
        return None
    return CombatEnd(
        hex_key=hex_key,
        attackers=attackers,
        defenders=defenders,
        reason=_read_str(payload.get('reason')),
        winner_player_id=_read_str(payload.get('winnerPlayerId')),
    )


# --- Extraction ---

@dataclass
class _OpenCombat:
    start_index: int
    start: CombatStart
    rounds: List[CombatRound] = field(default_factory=list)


def _step(open_combat: Optional[_OpenCombat], index: int, event: Any,
          closed: List[CombatSequence]) -> Optional[_OpenCombat]:
    """Advance the recogniser by one event, appending to closed on combat.end."""
    if not isinstance(event, dict):
        return open_combat
    event_type = event.get('type')
    if event_type == COMBAT_START:
        start = parse_combat_start(event)
        if start is None:
            logger.debug("Dropped unparseable combat.start at %d", index)
            return None
        return _OpenCombat(start_index=index, start=start)
    if open_combat is None:
        return None
    if event_type == COMBAT_ROUND:
        combat_round = parse_combat_round(event)
        if combat_round is None:
            logger.debug("Dropped unparseable combat.round at %d", index)
        else:
            open_combat.rounds.append(combat_round)
        return open_combat
    if event_type == COMBAT_END:
        end = parse_combat_end(event)
        if end is None:
            logger.debug("Discarded combat opened at %d: unparseable combat.end at %d",
                         open_combat.start_index, index)
            return None
        closed.append(CombatSequence(
            id=f"{open_combat.start.hex_key}-{open_combat.start_index}",
            start_index=open_combat.start_index,
            end_index=index,
            start=open_combat.start,
            rounds=tuple(open_combat.rounds),
            end=end,
        ))
        return None
    return open_combat


def extract_combat_sequences(events: Sequence[Any]) -> List[CombatSequence]:
    """
    Segment an event log into closed combat sequences.

    Args:
        events: Ordered log entries shaped {type, payload}

    Returns:
        CombatSequence records in log order; a combat still open at the end of
        the log is not emitted
    """
    sequences: List[CombatSequence] = []
    open_combat: Optional[_OpenCombat] = None
    for index, event in enumerate(events or []):
        open_combat = _step(open_combat, index, event, sequences)
    return sequences


class CombatSequenceTracker:
    """
    Incremental extractor for a log that only grows.

    update() processes just the entries appended since the previous call and
    returns the newly closed sequences. A log shorter than the one already
    seen means a new session, so the tracker starts over.
    """

    def __init__(self):
        self.sequences: List[CombatSequence] = []
        self._seen = 0
        self._open: Optional[_OpenCombat] = None

    def reset(self):
        self.sequences = []
        self._seen = 0
        self._open = None

    def update(self, events: Sequence[Any]) -> List[CombatSequence]:
        events = events or []
        if len(events) < self._seen:
            logger.debug("Event log shrank from %d to %d entries; restarting", self._seen, len(events))
            self.reset()
        new_sequences: List[CombatSequence] = []
        for index in range(self._seen, len(events)):
            self._open = _step(self._open, index, events[index], new_sequences)
        self._seen = len(events)
        self.sequences.extend(new_sequences)
        return new_sequences

    @property
    def in_progress(self) -> bool:
        return self._open is not None


def summarize_sequence(sequence: CombatSequence) -> Dict[str, Any]:
    """Totals for a replay header: rounds fought, hits dealt per side and units lost."""
    attacker_hits = sum(r.attackers.hits for r in sequence.rounds)
    defender_hits = sum(r.defenders.hits for r in sequence.rounds)
    return {
        'id': sequence.id,
        'hexKey': sequence.start.hex_key,
        'rounds': len(sequence.rounds),
        'attackerPlayerId': sequence.start.attackers.player_id,
        'defenderPlayerId': sequence.start.defenders.player_id,
        'attackerHits': attacker_hits,
        'defenderHits': defender_hits,
        'attackerLosses': sequence.start.attackers.total - sequence.end.attackers.total,
        'defenderLosses': sequence.start.defenders.total - sequence.end.defenders.total,
        'winnerPlayerId': sequence.end.winner_player_id,
        'reason': sequence.end.reason,
    }
