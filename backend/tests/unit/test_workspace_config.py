"""Unit tests for workspace escalation configuration."""
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from app.core.workspace import (
    EscalationConfig,
    default_escalation_config,
    get_escalation_config,
    normalize_keywords,
)
from app.models.workspace_settings import DEFAULT_ESCALATION_KEYWORDS, WorkspaceSettings


class TestNormalizeKeywords:

    def test_strips_and_drops_blanks(self):
        assert normalize_keywords(["  refund ", "", "   ", "police"]) == ["refund", "police"]

    def test_dedupes_case_insensitively_keeping_first(self):
        assert normalize_keywords(["Refund", "refund", "REFUND", "legal"]) == ["Refund", "legal"]


class TestEscalationConfig:

    def test_effective_keywords_when_enabled(self):
        config = EscalationConfig(workspace_id=None, keywords=["refund"], auto_escalate=True)
        assert config.effective_keywords == ["refund"]

    def test_effective_keywords_when_disabled(self):
        config = EscalationConfig(workspace_id=None, keywords=["refund"], auto_escalate=False)
        assert config.effective_keywords == []
        assert config.to_dict() == {"keywords": ["refund"], "auto_escalate": False}

    def test_default_config(self):
        config = default_escalation_config()
        assert config.keywords == DEFAULT_ESCALATION_KEYWORDS
        assert config.is_default is True
        assert config.auto_escalate is True


class TestGetEscalationConfig:

    def test_no_row_returns_defaults(self, session, workspace):
        config = get_escalation_config(session, workspace.id)

        assert config.is_default is True
        assert config.keywords == DEFAULT_ESCALATION_KEYWORDS
        assert len(config.keywords) == 9

    def test_stored_row(self, session, workspace):
        session.add(WorkspaceSettings(
            workspace_id=workspace.id,
            escalation_keywords=["flood", "fire"],
            auto_escalate=False,
        ))
        session.commit()

        config = get_escalation_config(session, workspace.id)

        assert config.is_default is False
        assert config.keywords == ["flood", "fire"]
        assert config.auto_escalate is False

    def test_stored_empty_list_is_respected(self, session, workspace):
        session.add(WorkspaceSettings(workspace_id=workspace.id, escalation_keywords=[]))
        session.commit()

        config = get_escalation_config(session, workspace.id)

        assert config.keywords == []
        assert config.is_default is False

    def test_lookup_failure_falls_back_to_defaults(self, session, workspace):
        error = OperationalError("SELECT", {}, Exception("connection reset"))
        with patch.object(session, "exec", side_effect=error):
            config = get_escalation_config(session, workspace.id)

        assert config.is_default is True
        assert config.keywords == DEFAULT_ESCALATION_KEYWORDS


class TestWorkspaceSettingsTable:

    def test_columns(self):
        assert set(WorkspaceSettings.__table__.columns.keys()) == {
            "id",
            "workspace_id",
            "escalation_keywords",
            "auto_escalate",
            "created_at",
            "updated_at",
        }
