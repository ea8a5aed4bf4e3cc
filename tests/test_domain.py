# =============================================================================
# Tests for the domain layer
# =============================================================================
# - template matching: first case-insensitive substring hit wins
# - conversation history: per-sender cap, FIFO eviction, dashboard views
# - system prompt built from persona fields
# =============================================================================

import pytest

from wabridge.domain.history import ConversationHistory
from wabridge.domain.matching import find_matching_template
from wabridge.domain.models import Persona, Role, Template
from wabridge.domain.prompt import build_system_prompt


class TestTemplateMatching:
    """Template lookup over an ordered list."""

    def test_case_insensitive_substring(self):
        templates = [Template("merhaba", "Hoş geldiniz")]
        match = find_matching_template(templates, "Merhaba, nasılsınız?")
        assert match is templates[0]

    def test_first_match_wins(self):
        templates = [
            Template("fiyat", "Fiyat listesi"),
            Template("fiyat nedir", "100 TL"),
        ]
        match = find_matching_template(templates, "fiyat nedir")
        assert match.reply == "Fiyat listesi"

    def test_no_match(self):
        templates = [Template("adres", "Örnek Mah. 123")]
        assert find_matching_template(templates, "fiyat nedir") is None

    def test_empty_list(self):
        assert find_matching_template([], "anything") is None

    def test_empty_trigger_matches_everything(self):
        """An empty trigger is a substring of every message."""
        templates = [Template("", "Catch-all")]
        assert find_matching_template(templates, "random text").reply == "Catch-all"
        assert find_matching_template(templates, "").reply == "Catch-all"

    def test_uppercase_trigger(self):
        templates = [Template("KARGO", "Kargo 2 gün içinde")]
        assert find_matching_template(templates, "kargom nerede? kargo").reply == "Kargo 2 gün içinde"


class TestConversationHistory:
    """Bounded per-sender turn log."""

    def test_pairs_until_cap(self):
        history = ConversationHistory(limit=20)
        for n in range(1, 16):
            history.record_exchange("a@c.us", f"q{n}", f"r{n}")
            assert len(history.turns("a@c.us")) == min(2 * n, 20)

    def test_oldest_evicted_first(self):
        history = ConversationHistory(limit=20)
        for n in range(12):
            history.record_exchange("a@c.us", f"q{n}", f"r{n}")

        turns = history.turns("a@c.us")
        assert len(turns) == 20
        # 24 turns written, the first two exchanges (4 turns) are gone
        assert turns[0].content == "q2"
        assert turns[0].role is Role.USER
        assert turns[-1].content == "r11"
        assert turns[-1].role is Role.ASSISTANT

    def test_single_append_evicts_one(self):
        history = ConversationHistory(limit=3)
        for text in ["a", "b", "c", "d"]:
            history.append("x", Role.USER, text)
        assert [t.content for t in history.turns("x")] == ["b", "c", "d"]

    def test_senders_isolated(self):
        history = ConversationHistory()
        history.append("a", Role.USER, "hi")
        history.append("b", Role.USER, "hello")
        assert history.messages("a") == [{"role": "user", "content": "hi"}]
        assert history.messages("b") == [{"role": "user", "content": "hello"}]

    def test_unknown_sender_empty(self):
        history = ConversationHistory()
        assert history.turns("nobody") == []
        assert history.summary("nobody") is None
        assert history.detail("nobody") is None

    def test_summary_and_detail(self):
        history = ConversationHistory()
        history.record_exchange("905551112233@c.us", "fiyat nedir", "100 TL")

        summary = history.summary("905551112233@c.us")
        assert summary["phone"] == "905551112233@c.us"
        assert summary["lastMessage"] == "100 TL"
        assert summary["messageCount"] == 2
        assert summary["lastMessageTime"]

        detail = history.detail("905551112233@c.us")
        assert detail == {
            "phone": "905551112233@c.us",
            "messageCount": 2,
            "history": [
                {"role": "user", "content": "fiyat nedir"},
                {"role": "assistant", "content": "100 TL"},
            ],
        }
        assert list(history.summaries()) == ["905551112233@c.us"]

    def test_forget_and_clear(self):
        history = ConversationHistory()
        history.append("a", Role.USER, "1")
        history.append("b", Role.USER, "2")

        assert history.forget("a") is True
        assert history.forget("a") is False
        assert "a" not in history
        assert len(history) == 1

        history.clear()
        assert len(history) == 0

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            ConversationHistory(limit=0)


class TestSystemPrompt:
    """Persona fields are embedded in the system instruction."""

    def test_all_fields_present(self):
        persona = Persona(
            brand="Acme",
            address="Main St 1",
            tone="Friendly",
            extra_instructions="Never spam.",
        )
        prompt = build_system_prompt(persona)
        assert "Acme" in prompt
        assert "Adres: Main St 1" in prompt
        assert "Tarz: Friendly" in prompt
        assert "Never spam." in prompt

    def test_default_persona(self):
        prompt = build_system_prompt(Persona())
        assert "XYZ Şirketi" in prompt
