"""
Human-readable labels for hexes, edges and target payloads.

Hexes are labelled by board row and column ("A1", "B3", ...): rows are the
distinct r coordinates in ascending order, columns the hexes of a row by q.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from map_gen import HexKeyError, parse_edge_key, parse_hex_key
from models import Board
from payloads import (ChampionPayload, ChoicePayload, EdgePayload, HexPairPayload, HexPayload,
                      MultiEdgePayload, MultiPathPayload, PathPayload, PlayerPayload, StackPayload,
                      TargetPayload)
from state import load_config

TILE_LABELS = {
    'capital': 'Capital',
    'forge': 'Forge',
    'mine': 'Mine',
    'center': 'Center',
}


@dataclass
class TargetDescription:
    """Lines to show for a chosen target plus the board keys to highlight."""
    lines: List[str] = field(default_factory=list)
    hex_keys: List[str] = field(default_factory=list)
    edge_keys: List[str] = field(default_factory=list)

    def add_line(self, line: str):
        if line not in self.lines:
            self.lines.append(line)

    def add_hex(self, hex_key: Optional[str]):
        if hex_key and hex_key not in self.hex_keys:
            self.hex_keys.append(hex_key)

    def add_edge(self, edge_key: Optional[str]):
        if edge_key and edge_key not in self.edge_keys:
            self.edge_keys.append(edge_key)

    def to_dict(self) -> Dict[str, List[str]]:
        return {'targetLines': self.lines, 'targetHexKeys': self.hex_keys, 'targetEdgeKeys': self.edge_keys}


def build_hex_labels(hex_keys: Iterable[str], row_limit: Optional[int] = None) -> Dict[str, str]:
    """
    Map each hex key to a row/column label.

    Rows past row_limit (26 by default, one per letter) are labelled "R27-1",
    "R28-1" and so on. Malformed keys get no label.
    """
    if row_limit is None:
        row_limit = load_config().get('label_row_limit', 26)
    rows: Dict[int, List[tuple]] = {}
    for key in hex_keys:
        try:
            q, r = parse_hex_key(key)
        except HexKeyError:
            continue
        rows.setdefault(r, []).append((q, key))
    labels = {}
    for row_index, r in enumerate(sorted(rows)):
        row_label = chr(ord('A') + row_index) if row_index < row_limit else f"R{row_index + 1}-"
        for col_index, (_, key) in enumerate(sorted(rows[r])):
            labels[key] = f"{row_label}{col_index + 1}"
    return labels


def format_hex_label(hex_key: str, labels: Mapping[str, str]) -> str:
    return labels.get(hex_key, hex_key)


def format_edge_label(edge_key: str, labels: Mapping[str, str]) -> str:
    try:
        a, b = parse_edge_key(edge_key)
    except HexKeyError:
        return edge_key
    return f"{format_hex_label(a, labels)}-{format_hex_label(b, labels)}"


def format_tile_label(tile: Optional[str]) -> Optional[str]:
    return TILE_LABELS.get(tile)


def champion_glyph(name: str) -> str:
    """Two-letter badge for a champion: initials, else the first alphanumerics."""
    initials = ''.join(word[0].upper() for word in name.split())
    glyph = re.sub(r'[^A-Z]', '', initials)[:2]
    if glyph:
        return glyph
    fallback = re.sub(r'[^A-Za-z0-9]', '', name)[:2].upper()
    return fallback or 'C'


def _path_line(path, labels: Mapping[str, str]) -> str:
    return "Path " + " → ".join(format_hex_label(h, labels) for h in path)


def describe_payload(payload: Optional[TargetPayload], board: Board, labels: Mapping[str, str],
                     card_names: Optional[Mapping[str, str]] = None) -> TargetDescription:
    """
    Describe a finalized payload for the reveal panel.

    Args:
        payload: The payload (None describes nothing)
        board: Board snapshot, used to place champions
        labels: Hex labels from build_hex_labels
        card_names: Card definition id -> display name lookup table

    Returns:
        TargetDescription with lines and highlighted keys
    """
    card_names = card_names or {}
    info = TargetDescription()
    if payload is None:
        return info

    if isinstance(payload, EdgePayload):
        info.add_edge(payload.edge_key)
        info.add_line(f"Edge {format_edge_label(payload.edge_key, labels)}")
    elif isinstance(payload, MultiEdgePayload):
        for edge_key in payload.edge_keys:
            info.add_edge(edge_key)
        edge_labels = [format_edge_label(e, labels) for e in payload.edge_keys]
        prefix = "Edge" if len(edge_labels) == 1 else "Edges"
        info.add_line(f"{prefix} {', '.join(edge_labels)}")
    elif isinstance(payload, StackPayload):
        info.add_hex(payload.from_hex)
        info.add_hex(payload.to_hex)
        info.add_line(f"Move {format_hex_label(payload.from_hex, labels)} → "
                      f"{format_hex_label(payload.to_hex, labels)}")
    elif isinstance(payload, PathPayload):
        for hex_key in payload.path:
            info.add_hex(hex_key)
        info.add_line(_path_line(payload.path, labels))
    elif isinstance(payload, MultiPathPayload):
        for path in payload.paths:
            for hex_key in path:
                info.add_hex(hex_key)
            info.add_line(_path_line(path, labels))
    elif isinstance(payload, HexPayload):
        info.add_hex(payload.hex_key)
        info.add_line(f"Hex {format_hex_label(payload.hex_key, labels)}")
    elif isinstance(payload, HexPairPayload):
        info.add_hex(payload.first)
        info.add_hex(payload.second)
        info.add_line(f"Hexes {format_hex_label(payload.first, labels)}, "
                      f"{format_hex_label(payload.second, labels)}")
    elif isinstance(payload, ChoicePayload):
        if payload.choice == 'capital':
            info.add_line("Choice: Capital")
        else:
            info.add_hex(payload.hex_key)
            info.add_line(f"Choice: Occupied {format_hex_label(payload.hex_key, labels)}")
    elif isinstance(payload, ChampionPayload):
        unit = board.units.get(payload.unit_id)
        name = payload.unit_id
        if unit is not None and unit.card_def_id:
            name = card_names.get(unit.card_def_id, unit.card_def_id)
        if unit is not None:
            info.add_hex(unit.hex)
            info.add_line(f"Champion {name} @ {format_hex_label(unit.hex, labels)}")
        else:
            info.add_line(f"Champion {name}")
    elif isinstance(payload, PlayerPayload):
        info.add_line(f"Player {payload.player_id}")
    return info


def describe_basic_action(action: Dict[str, Any], labels: Mapping[str, str]) -> Dict[str, Any]:
    """
    Label and target lines for a basic action submission.

    Args:
        action: {'kind': 'buildBridge'|'march'|'capitalReinforce', ...action fields}
        labels: Hex labels from build_hex_labels

    Returns:
        {'label': str, 'targets': TargetDescription dict}
    """
    kind = action.get('kind')
    info = TargetDescription()
    if kind == 'buildBridge':
        edge_key = action.get('edgeKey', '')
        try:
            a, b = parse_edge_key(edge_key)
            info.add_hex(a)
            info.add_hex(b)
        except HexKeyError:
            pass  # Unparseable edges are shown raw
        info.add_edge(edge_key)
        info.add_line(f"Edge {format_edge_label(edge_key, labels)}")
        return {'label': 'Build Bridge', 'targets': info.to_dict()}
    if kind == 'march':
        from_hex, to_hex = action.get('from', ''), action.get('to', '')
        info.add_line(f"From {format_hex_label(from_hex, labels)} to {format_hex_label(to_hex, labels)}")
        force_count = action.get('forceCount')
        if isinstance(force_count, int) and not isinstance(force_count, bool):
            info.add_line(f"Forces: {force_count}")
        include = action.get('includeChampions')
        if isinstance(include, bool):
            info.add_line(f"Champions: {'Move' if include else 'Hold'}")
        info.add_hex(from_hex)
        info.add_hex(to_hex)
        return {'label': 'March', 'targets': info.to_dict()}
    if kind == 'capitalReinforce':
        hex_key = action.get('hexKey')
        if hex_key:
            info.add_hex(hex_key)
            info.add_line(f"Reinforce {format_hex_label(hex_key, labels)}")
        else:
            info.add_line("Reinforce capital")
        return {'label': 'Reinforce', 'targets': info.to_dict()}
    return {'label': 'Action', 'targets': info.to_dict()}
