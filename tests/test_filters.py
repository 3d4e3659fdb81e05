import random

from filters import select_new_items


def test_no_checkpoint_selects_all_oldest_first(make_item):
    items = [make_item(100), make_item(50)]
    selection = select_new_items(items, None, 20)
    assert [i.published_at for i in selection.selected] == [50, 100]
    assert selection.new_checkpoint == 100


def test_excluded_tag_advances_checkpoint(make_item):
    items = [make_item(150, tags={"nocrosspost"})]
    selection = select_new_items(items, 100, 20)
    assert selection.selected == []
    assert [i.published_at for i in selection.excluded] == [150]
    assert selection.new_checkpoint == 150


def test_exclusion_tag_is_case_insensitive(make_item):
    items = [make_item(150, tags={"NoCrossPost"}), make_item(120)]
    selection = select_new_items(items, 100, 20, exclude_tag="NOCROSSPOST")
    assert [i.published_at for i in selection.selected] == [120]


def test_old_items_are_not_selected(make_item):
    items = [make_item(300), make_item(200), make_item(100)]
    selection = select_new_items(items, 200, 20)
    assert [i.published_at for i in selection.selected] == [300]
    assert selection.new_checkpoint == 300


def test_equal_timestamp_is_not_new(make_item):
    selection = select_new_items([make_item(200)], 200, 20)
    assert selection.selected == []
    assert selection.new_checkpoint == 200


def test_max_items_limits_head_of_feed(make_item):
    items = [make_item(t) for t in (500, 400, 300, 200)]
    selection = select_new_items(items, None, 2)
    assert [i.published_at for i in selection.selected] == [400, 500]
    assert selection.considered == 2
    assert selection.new_checkpoint == 500


def test_empty_feed_keeps_checkpoint(make_item):
    assert select_new_items([], 42, 20).new_checkpoint == 42
    assert select_new_items([], None, 20).new_checkpoint is None


def test_checkpoint_never_decreases(make_item):
    items = [make_item(10), make_item(5)]
    selection = select_new_items(items, 1000, 20)
    assert selection.new_checkpoint == 1000
    assert selection.selected == []


def test_selection_properties_hold_for_random_feeds(make_item):
    rng = random.Random(99)
    for _ in range(200):
        stamps = sorted({rng.randint(0, 1000) for _ in range(rng.randint(0, 15))}, reverse=True)
        items = [
            make_item(t, tags={"nocrosspost"} if rng.random() < 0.2 else set())
            for t in stamps
        ]
        checkpoint = rng.choice([None, rng.randint(0, 1000)])
        max_items = rng.randint(1, 20)

        first = select_new_items(items, checkpoint, max_items)
        second = select_new_items(items, checkpoint, max_items)

        assert first == second
        if checkpoint is not None:
            assert all(i.published_at > checkpoint for i in first.selected)
            assert first.new_checkpoint >= checkpoint
        assert not any(i.has_tag("nocrosspost") for i in first.selected)
        assert [i.published_at for i in first.selected] == sorted(i.published_at for i in first.selected)
