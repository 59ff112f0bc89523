"""Tests for the incremental fuzzy matcher."""

import threading

import pytest

from twm.matching import Matcher, PatternAtom, fuzzy_score, parse_pattern, score_atom


def run_to_completion(matcher: Matcher) -> None:
    while matcher.tick(timeout_ms=50).running:
        pass


def matched(matcher: Matcher):
    run_to_completion(matcher)
    return list(matcher.snapshot().items)


class TestScoring:
    def test_subsequence_required(self):
        atom = PatternAtom("abc", ignore_case=True)

        assert score_atom(atom, "a_b_c") is not None
        assert score_atom(atom, "acb") is None

    def test_smart_case(self):
        assert parse_pattern("foo") == [PatternAtom("foo", ignore_case=True)]
        assert parse_pattern("Foo") == [PatternAtom("Foo", ignore_case=False)]

        assert fuzzy_score(parse_pattern("foo"), "FOO") is not None
        assert fuzzy_score(parse_pattern("Foo"), "foo") is None

    def test_whitespace_separates_atoms(self):
        atoms = parse_pattern("  proj   twm ")

        assert [a.text for a in atoms] == ["proj", "twm"]
        assert fuzzy_score(atoms, "/home/me/projects/twm") is not None
        assert fuzzy_score(atoms, "/home/me/projects/tmux") is None

    def test_consecutive_beats_scattered(self):
        atom = PatternAtom("twm", ignore_case=True)

        assert score_atom(atom, "/src/twm") > score_atom(atom, "/t/w/x/m")

    def test_boundary_beats_middle_of_word(self):
        atom = PatternAtom("b", ignore_case=True)

        assert score_atom(atom, "foo/bar") > score_atom(atom, "foobar")

    def test_empty_pattern_matches_everything(self):
        assert fuzzy_score([], "anything") == 0


class TestMatcher:
    def test_empty_pattern_keeps_everything(self):
        matcher = Matcher()
        matcher.extend(["bbb", "a", "cc"])

        # equal scores: shorter first
        assert matched(matcher) == ["a", "cc", "bbb"]

    def test_push_order_breaks_ties(self):
        matcher = Matcher()
        matcher.extend(["/x/two", "/x/one"])

        assert matched(matcher) == ["/x/two", "/x/one"]

    def test_ranking_by_score(self):
        matcher = Matcher()
        matcher.extend(["/a/t_w_x_m", "/a/twm", "/a/other"])
        matcher.set_pattern("twm")

        assert matched(matcher) == ["/a/twm", "/a/t_w_x_m"]

    def test_snapshot_counts_and_limit(self):
        matcher = Matcher()
        matcher.extend([f"/p/item{i}" for i in range(10)] + ["/p/zzz"])
        matcher.set_pattern("item")
        run_to_completion(matcher)

        snapshot = matcher.snapshot(limit=3)
        assert snapshot.matched_count == 10
        assert snapshot.item_count == 11
        assert len(snapshot.items) == 3
        assert snapshot.get(5) is None

    def test_appending_never_grows_results(self):
        items = ["/home/me/projects/twm", "/home/me/projects/tmux", "/home/me/work/api", "/tmp/thing"]
        matcher = Matcher()
        matcher.extend(items)

        previous = len(matched(matcher))
        query = ""
        for ch in "tmux":
            query += ch
            matcher.set_pattern(query)
            current = matched(matcher)
            assert len(current) <= previous
            assert set(current) <= set(items)
            previous = len(current)

    def test_narrowing_only_rechecks_previous_matches(self, monkeypatch):
        matcher = Matcher()
        matcher.extend(["abc", "abd", "xyz"])
        matcher.set_pattern("ab")
        run_to_completion(matcher)

        evaluated = []
        original = matcher._evaluate

        def spy(index):
            evaluated.append(index)
            return original(index)

        monkeypatch.setattr(matcher, "_evaluate", spy)
        matcher.set_pattern("abc")
        run_to_completion(matcher)

        assert sorted(evaluated) == [0, 1]
        assert list(matcher.snapshot().items) == ["abc"]

    def test_removing_characters_widens_results(self):
        matcher = Matcher()
        matcher.extend(["abc", "abd", "xyz"])
        matcher.set_pattern("abc")
        assert matched(matcher) == ["abc"]

        matcher.set_pattern("ab")
        assert matched(matcher) == ["abc", "abd"]

    def test_non_extension_edit_rescans(self):
        matcher = Matcher()
        matcher.extend(["abc", "xbc"])
        matcher.set_pattern("ab")
        assert matched(matcher) == ["abc"]

        matcher.set_pattern("xb")
        assert matched(matcher) == ["xbc"]

    def test_items_pushed_after_pattern_are_matched(self):
        matcher = Matcher()
        matcher.set_pattern("api")
        run_to_completion(matcher)
        matcher.push("/work/api")
        matcher.push("/work/web")

        assert matched(matcher) == ["/work/api"]

    def test_narrowing_while_work_is_pending(self):
        matcher = Matcher()
        matcher.extend([f"/repo/{i:05d}/ab" for i in range(3000)] + ["/repo/abc"])
        matcher.set_pattern("a")
        matcher.tick(timeout_ms=0)
        matcher.set_pattern("abc")

        assert matched(matcher) == ["/repo/abc"]

    def test_tick_reports_changes(self):
        matcher = Matcher()
        assert matcher.tick().changed is False

        matcher.push("x")
        status = matcher.tick()
        assert status.changed is True
        assert status.running is False
        assert matcher.tick().changed is False

    def test_concurrent_producers(self):
        matcher = Matcher()
        injector = matcher.injector()

        def produce(prefix):
            for i in range(500):
                injector(f"/{prefix}/{i}")

        threads = [threading.Thread(target=produce, args=(p,)) for p in "abcd"]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        run_to_completion(matcher)
        snapshot = matcher.snapshot()
        assert snapshot.item_count == 2000
        assert len(set(snapshot.items)) == 2000


@pytest.mark.parametrize("pattern", ["", "a", "ab"])
def test_setting_same_pattern_is_a_noop(pattern):
    matcher = Matcher()
    matcher.extend(["ab", "b"])
    matcher.set_pattern(pattern)
    run_to_completion(matcher)

    matcher.set_pattern(pattern)
    assert matcher.tick().changed is False


@pytest.mark.parametrize("text", ["/home/İa", "/srv/İİİ/app", "/ǅemo/a"])
def test_case_folding_keeps_positions_aligned(text):
    """Characters whose lowercase form is longer must not shift match positions."""
    matcher = Matcher()
    matcher.push(text)
    matcher.set_pattern("a")

    assert matched(matcher) == [text]
    assert score_atom(PatternAtom("a", ignore_case=True), text) is not None


def test_multi_character_lowercase_is_matched_literally():
    assert fuzzy_score(parse_pattern("İ"), "/home/İa") is not None
    assert fuzzy_score(parse_pattern("i"), "/home/İ") is None
