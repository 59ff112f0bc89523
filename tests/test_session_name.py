"""Tests for session name derivation and collision handling."""

import pytest

from conftest import FakeTmux
from twm.exceptions import SessionNameExhaustedError
from twm.session_name import (
    SessionNameResolver,
    sanitize_session_name,
    session_name_from_path,
)


@pytest.mark.parametrize(
    "path, components, expected",
    [
        ("/home/me/projects/foo", 1, "foo"),
        ("/home/me/projects/foo", 2, "projects/foo"),
        ("/home/me/projects/foo/", 1, "foo"),
        ("/home/me/projects/foo.rs", 2, "projects/foo_rs"),
        ("/a/b", 5, "a/b"),
    ],
)
def test_session_name_from_path(path, components, expected):
    assert session_name_from_path(path, components) == expected


def test_sanitize_replaces_target_separators():
    assert sanitize_session_name("v1.2:beta") == "v1_2_beta"


class TestResolve:
    def test_free_name(self, fake_tmux):
        resolved = SessionNameResolver(fake_tmux).resolve("/home/me/bar")

        assert resolved.name == "bar"
        assert resolved.exists is False

    def test_existing_session_for_same_path(self):
        tmux = FakeTmux(sessions={"bar": {"TWM_ROOT": "/home/me/bar"}})

        resolved = SessionNameResolver(tmux).resolve("/home/me/bar")

        assert resolved.name == "bar"
        assert resolved.exists is True

    def test_collision_adds_a_component(self):
        tmux = FakeTmux(sessions={"bar": {"TWM_ROOT": "/home/me/other/bar"}})

        resolved = SessionNameResolver(tmux).resolve("/home/me/foo/bar")

        assert resolved.name == "foo/bar"
        assert resolved.exists is False

    def test_unmanaged_session_counts_as_collision(self):
        tmux = FakeTmux(sessions={"bar": {}})

        assert SessionNameResolver(tmux).resolve("/x/bar").name == "x/bar"

    def test_repeated_collisions(self):
        tmux = FakeTmux(
            sessions={
                "bar": {"TWM_ROOT": "/elsewhere/bar"},
                "foo/bar": {"TWM_ROOT": "/elsewhere/foo/bar"},
            }
        )

        assert SessionNameResolver(tmux).resolve("/home/foo/bar").name == "home/foo/bar"

    def test_starts_from_configured_components(self, fake_tmux):
        resolved = SessionNameResolver(fake_tmux).resolve("/home/me/foo/bar", components=2)

        assert resolved.name == "foo/bar"
        assert fake_tmux.has_session_calls == ["foo/bar"]

    def test_resolving_twice_finds_the_created_session(self, fake_tmux):
        resolver = SessionNameResolver(fake_tmux)
        first = resolver.resolve("/home/me/bar")
        fake_tmux.new_session(first.name, "/home/me/bar", {"TWM_ROOT": "/home/me/bar"})

        second = resolver.resolve("/home/me/bar")

        assert second.name == first.name
        assert second.exists is True

    def test_exhausted(self):
        tmux = FakeTmux(sessions={"bar": {}, "foo/bar": {}})

        with pytest.raises(SessionNameExhaustedError) as exc_info:
            SessionNameResolver(tmux).resolve("/foo/bar")

        assert exc_info.value.tried == "foo/bar"

    def test_root_path_has_no_name(self, fake_tmux):
        with pytest.raises(SessionNameExhaustedError):
            SessionNameResolver(fake_tmux).resolve("/")


def test_root_path():
    tmux = FakeTmux(sessions={"proj": {"TWM_ROOT": "/home/me/proj"}, "plain": {}})
    resolver = SessionNameResolver(tmux)

    assert resolver.root_path("proj") == "/home/me/proj"
    assert resolver.root_path("plain") is None
    assert resolver.root_path("missing") is None


def test_group_session_name_skips_taken_suffixes():
    tmux = FakeTmux(sessions={"proj": {}, "proj-1": {}, "proj-2": {}})

    assert SessionNameResolver(tmux).group_session_name("proj") == "proj-3"
    assert SessionNameResolver(FakeTmux()).group_session_name("proj") == "proj-1"
