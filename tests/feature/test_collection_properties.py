"""Feature tests for behaviour that must hold across whole collections."""

import json
from typing import Any, Dict

import pytest

from collectkit import Collection

SAMPLES = [
    {},
    {0: 'a', 1: 'b', 2: 'c'},
    {'a': 1, 'b': None, 'c': 0, 'd': ''},
    {5: 'x', 'k': [1, 2], 7: {'nested': True}},
    {0: 0, 1: False, 2: 'text', 3: 1.5},
]


class TestCollectionPropertiesFeature:
    """Feature test suite for collection invariants."""

    @pytest.mark.parametrize('items', SAMPLES)
    def test_identity_map_preserves_items(self, items: Dict[Any, Any]) -> None:
        """Test that mapping to the same value changes nothing."""
        collection = Collection(items)
        assert collection.map(lambda value, key: value).to_array() == collection.to_array()

    @pytest.mark.parametrize('items', SAMPLES)
    def test_default_filter_keeps_truthy_entries_in_order(self, items: Dict[Any, Any]) -> None:
        """Test the default filter against a direct computation."""
        expected = [(key, value) for key, value in items.items() if value]
        assert Collection(items).filter().items() == expected

    @pytest.mark.parametrize('items', SAMPLES)
    def test_json_round_trip(self, items: Dict[Any, Any]) -> None:
        """Test that decoding the JSON output rebuilds the items."""
        collection = Collection.make(items)
        assert Collection.make(json.loads(collection.to_json())).to_array() == items

    @pytest.mark.parametrize('items', SAMPLES)
    def test_operations_do_not_mutate_receiver(self, items: Dict[Any, Any]) -> None:
        """Test that transformations leave the original alone."""
        collection = Collection(items)
        before = collection.items()

        collection.filter()
        collection.map(lambda value: None)
        collection.reverse()
        collection.merge({'z': 1})
        collection.slice(1)
        collection.only(['a'])
        collection.sort()
        collection.shuffle()

        assert collection.items() == before

    def test_reverse(self) -> None:
        """Test reversing a list."""
        assert Collection([1, 2, 3]).reverse().values() == [3, 2, 1]

    def test_merge(self) -> None:
        """Test merging keyed data."""
        result = Collection({'a': 1, 'b': 2}).merge({'a': 99, 'c': 3})
        assert result.to_array() == {'a': 99, 'b': 2, 'c': 3}

    def test_unique(self) -> None:
        """Test de-duplicating a list."""
        assert Collection([1, 2, 2, 3]).unique().values() == [1, 2, 3]

    def test_for_page(self) -> None:
        """Test paging over five items."""
        collection = Collection(dict(enumerate('abcde')))
        assert collection.for_page(2, 2).to_array() == {2: 'c', 3: 'd'}

    def test_where_keeps_matches_in_order(self) -> None:
        """Test where() over a list of people."""
        people = Collection([{'age': 10}, {'age': 30}, {'age': 20}])
        assert people.where('age', '>', 15).values() == [{'age': 30}, {'age': 20}]

    @pytest.mark.parametrize('values', [['v'], {'x': 'v'}, Collection({'y': 1})])
    def test_insert_on_absent_key_matches_push_and_prepend(self, values: Any) -> None:
        """Test the fallbacks of insert_after and insert_before."""
        base = {'a': 1, 3: 'b'}

        assert Collection(base).insert_after('missing', values) == Collection(base).push(values)
        assert Collection(base).insert_before('missing', values) == Collection(base).prepend(values)

    def test_chained_pipeline(self) -> None:
        """Test a realistic chain of operations."""
        orders = Collection([
            {'id': 1, 'customer': 'ann', 'total': 30, 'status': 'paid'},
            {'id': 2, 'customer': 'bob', 'total': 12, 'status': 'open'},
            {'id': 3, 'customer': 'ann', 'total': 55, 'status': 'paid'},
            {'id': 4, 'customer': 'cid', 'total': 8, 'status': 'paid'},
        ])

        totals = (
            orders.where('status', 'paid')
            .group_by('customer')
            .map(lambda bucket: sum(order['total'] for order in bucket))
            .sort(lambda a, b: b - a)
        )

        assert totals.to_array() == {'ann': 85, 'cid': 8}
        assert totals.to_json() == '{"ann":85,"cid":8}'
        assert orders.pluck('customer', 'id').unique().implode(',') == 'ann,bob,cid'
