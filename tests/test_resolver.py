"""Tests for reply domain resolution."""

from modrinthbot.conversation.resolver import Domain, resolve
from modrinthbot.session.models import DetailEntry, SearchState, Session, VersionState
from modrinthbot.session.store import InMemorySessionStore


def _session() -> Session:
    entry = DetailEntry(url="https://modrinth.com/mod/sodium", name="Sodium")
    return Session(
        user_id="42",
        search=SearchState(category="mods", query="sodium", result_message_id="m3", prompt_message_id="m4"),
        last_activity=0.0,
        details={"m1": entry},
        versions=VersionState(project_id="sodium", resource_name="Sodium", message_ids=["m2"]),
    )


class TestResolve:
    """Tests for resolve()."""

    def test_each_domain(self):
        session = _session()
        detail = resolve(session, "m1")
        assert detail.domain is Domain.DETAIL
        assert detail.entry.name == "Sodium"
        assert resolve(session, "m2").domain is Domain.VERSION
        assert resolve(session, "m3").domain is Domain.SEARCH
        assert resolve(session, "m4").domain is Domain.SEARCH
        assert resolve(session, "m9").domain is Domain.NONE

    def test_detail_wins_over_version(self):
        """An id tracked in both maps resolves to the detail entry."""
        session = _session()
        session.versions.message_ids.append("m1")
        assert resolve(session, "m1").domain is Domain.DETAIL

    def test_version_wins_over_search(self):
        session = _session()
        session.versions.message_ids.append("m3")
        assert resolve(session, "m3").domain is Domain.VERSION

    def test_numeric_ids_are_normalized(self):
        session = _session()
        session.details["123"] = DetailEntry(url="https://modrinth.com/mod/x", name="X")
        assert resolve(session, 123).domain is Domain.DETAIL

    def test_no_session_or_no_id(self):
        assert resolve(None, "m1").domain is Domain.NONE
        assert resolve(_session(), None).domain is Domain.NONE
        assert resolve(_session(), "  ").domain is Domain.NONE

    def test_replacement_forgets_old_messages(self):
        """After a new search replaces the session, old detail messages no longer resolve."""
        store = InMemorySessionStore()
        store.create("42", SearchState(category="mods", query="sodium", result_message_id="m3"))
        store.mutate("42", lambda s: s.details.__setitem__("m1", DetailEntry(url="u", name="n")))
        assert resolve(store.get("42"), "m1").domain is Domain.DETAIL

        store.create("42", SearchState(category="mods", query="iris", result_message_id="m10"))
        assert resolve(store.get("42"), "m1").domain is Domain.NONE
