"""
Tests for typed target payloads and target spec parsing.
"""

import pytest

from payloads import (
    EdgePayload,
    HexPairPayload,
    MultiPathPayload,
    NonePayload,
    PayloadError,
    StackPayload,
    build_payload,
    parse_payload,
)
from target_specs import (
    ChampionSpec,
    ChoiceSpec,
    EdgeSpec,
    HexSpec,
    MultiEdgeSpec,
    MultiPathSpec,
    NoneSpec,
    PathSpec,
    PlayerSpec,
    StackSpec,
    TargetKind,
    parse_target_spec,
    spec_for_basic_action,
)


class TestPayloadValidation:
    """Payloads validate once, at construction."""

    def test_edge_key_must_be_canonical(self) -> None:
        assert EdgePayload('0,0|1,0').to_dict() == {'edgeKey': '0,0|1,0'}
        with pytest.raises(PayloadError):
            EdgePayload('1,0|0,0')
        with pytest.raises(PayloadError):
            EdgePayload('0,0')

    def test_stack_payload(self) -> None:
        assert StackPayload('0,0', '1,0').to_dict() == {'from': '0,0', 'to': '1,0'}
        with pytest.raises(PayloadError):
            StackPayload('0,0', '0,0')
        with pytest.raises(PayloadError):
            StackPayload('0,0', '1,0', force_count=-1)
        with pytest.raises(PayloadError):
            StackPayload('0,0', '1,0', force_count=True)

    def test_multi_path_needs_distinct_origins(self) -> None:
        with pytest.raises(PayloadError):
            MultiPathPayload((('0,0', '1,0'), ('0,0', '0,1')))
        with pytest.raises(PayloadError):
            MultiPathPayload((('0,0',),))

    def test_build_payload_returns_none_on_error(self) -> None:
        assert build_payload(HexPairPayload, '0,0', 'x') is None
        assert build_payload(HexPairPayload, '0,0', '1,0').to_dict() == {'hexKeys': ['0,0', '1,0']}

    def test_none_payload_has_no_body(self) -> None:
        assert NonePayload().to_dict() is None


class TestParsePayload:
    """Wire dicts back into payload objects."""

    def test_parse_stack(self) -> None:
        payload = parse_payload({'from': '0,0', 'to': '1,0', 'forceCount': 2}, 'stack')
        assert payload == StackPayload('0,0', '1,0', 2)

    def test_parse_multi_path(self) -> None:
        raw = {'paths': [['0,0', '1,0'], ['-1,0', '-1,1']]}
        assert parse_payload(raw, TargetKind.MULTI_PATH).to_dict() == raw

    def test_parse_none(self) -> None:
        assert isinstance(parse_payload(None, 'none'), NonePayload)

    @pytest.mark.parametrize("raw,kind", [
        ({'edgeKey': 5}, 'edge'),
        ({'hexKeys': ['0,0']}, 'hexPair'),
        ({'path': '0,0'}, 'path'),
        ({'choice': 'occupiedHex'}, 'choice'),
        ({'unitId': ''}, 'champion'),
        ({'playerId': 'p2'}, 'teleport'),
        ('0,0', 'hex'),
    ])
    def test_wrong_shapes_raise(self, raw, kind) -> None:
        with pytest.raises(PayloadError):
            parse_payload(raw, kind)


class TestParseTargetSpec:
    """Raw card targetSpec dicts into spec variants."""

    def test_edge_flags(self) -> None:
        spec = parse_target_spec({'kind': 'edge', 'anywhere': True, 'existingBridge': True})
        assert spec == EdgeSpec(anywhere=True, existing_bridge=True)

    def test_multi_edge_bounds(self) -> None:
        assert parse_target_spec({'kind': 'multiEdge', 'minEdges': 1, 'maxEdges': 2}) == \
            MultiEdgeSpec(min_edges=1, max_edges=2)
        assert parse_target_spec({'kind': 'multiEdge', 'minEdges': 3, 'maxEdges': 2}) is None

    def test_stack_and_path(self) -> None:
        assert parse_target_spec({'kind': 'stack', 'ignoresBridges': True}) == StackSpec(requires_bridge=False)
        spec = parse_target_spec({'kind': 'path', 'maxDistance': 2, 'stopOnOccupied': True})
        assert spec == PathSpec(max_distance=2, stop_on_occupied=True)
        assert parse_target_spec({'kind': 'multiPath', 'maxPaths': 2}) == MultiPathSpec(min_paths=1, max_paths=2)

    def test_hex_filter_aliases(self) -> None:
        spec = parse_target_spec({'kind': 'hex', 'owner': 'self', 'requiresEmpty': True, 'allowCapital': False})
        assert isinstance(spec, HexSpec)
        assert spec.filter.occupancy == 'empty'
        assert spec.filter.allow_empty
        assert not spec.filter.allow_capital
        assert parse_target_spec({'kind': 'hex', 'occupied': True}).filter.occupancy == 'occupied'

    def test_champion_friendly_requirement(self) -> None:
        spec = parse_target_spec({'kind': 'champion', 'owner': 'enemy',
                                  'requiresFriendlyChampion': True, 'maxDistance': 1})
        assert spec == ChampionSpec(owner='enemy', max_distance_from_friendly_champion=1)

    def test_choice_and_player(self) -> None:
        spec = parse_target_spec({'kind': 'choice', 'options': [{'kind': 'capital'}, {'kind': 'occupiedHex'}]})
        assert isinstance(spec, ChoiceSpec)
        assert [o.kind for o in spec.options] == ['capital', 'occupiedHex']
        assert parse_target_spec({'kind': 'choice', 'options': []}) is None
        assert parse_target_spec({'kind': 'player'}) == PlayerSpec(owner='enemy')
        assert parse_target_spec({'kind': 'none'}) == NoneSpec()

    def test_invalid_specs(self) -> None:
        assert parse_target_spec({'kind': 'teleport'}) is None
        assert parse_target_spec({'kind': 'hex', 'owner': 'neutral'}) is None
        assert parse_target_spec('edge') is None
        assert parse_target_spec(None) is None

    def test_basic_actions(self) -> None:
        assert spec_for_basic_action('buildBridge') == EdgeSpec()
        assert spec_for_basic_action('march') == StackSpec()
        assert spec_for_basic_action('capitalReinforce').options[0].kind == 'capital'
        assert spec_for_basic_action('pass') is None
