# tests/test_scripts.py
"""Command-line helpers: environment verification and admin bootstrap."""

from __future__ import annotations

from pathlib import Path

import pytest

from inkwell.scripts import verify_env
from inkwell.scripts.create_admin import ensure_admin
from inkwell.scripts.migrate import MIGRATIONS_DIR, build_config
from tests.conftest import make_user

STRONG_SECRET = "x" * 40


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    names = (
        verify_env.REQUIRED_VARS + verify_env.RECOMMENDED_VARS + verify_env.OPTIONAL_VARS
    )
    for name in names:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestVerifyEnv:
    def test_mask_keeps_four_characters(self) -> None:
        assert verify_env.mask("supersecretvalue") == "supe****"
        assert verify_env.is_sensitive("SENTRY_DSN")
        assert not verify_env.is_sensitive("PORT")

    def test_missing_required_blocks(self, clean_env, capsys) -> None:
        assert verify_env.main([]) == 1
        out = capsys.readouterr().out
        assert "[missing] JWT_SECRET (required)" in out
        assert "Deployment blocked" in out

    def test_complete_environment_passes_and_masks_secrets(self, clean_env, capsys) -> None:
        clean_env.setenv("ENVIRONMENT", "production")
        clean_env.setenv("DATABASE_URL", "postgresql://db/inkwell")
        clean_env.setenv("JWT_SECRET", STRONG_SECRET)
        clean_env.setenv("JWT_REFRESH_SECRET", "y" * 40)

        assert verify_env.main([]) == 0
        out = capsys.readouterr().out
        assert "[ok] JWT_SECRET: xxxx****" in out
        assert STRONG_SECRET not in out
        assert "Deployment ready" in out

    def test_security_warnings(self) -> None:
        report = verify_env.verify(
            {
                "ENVIRONMENT": "production",
                "DATABASE_URL": "sqlite://",
                "JWT_SECRET": "short",
                "JWT_REFRESH_SECRET": "short",
            }
        )
        assert report.ok
        assert "JWT_SECRET should be at least 32 characters long" in report.warnings
        assert "JWT_SECRET and JWT_REFRESH_SECRET must differ in production" in report.warnings

    def test_env_file_is_read(self, clean_env, tmp_path: Path, capsys) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text(
            "ENVIRONMENT=development\n"
            "DATABASE_URL=sqlite:///./inkwell.db\n"
            f"JWT_SECRET={STRONG_SECRET}\n"
            f"JWT_REFRESH_SECRET={'z' * 40}\n"
        )
        assert verify_env.main(["--env-file", str(env_file)]) == 0

    def test_missing_env_file(self, tmp_path: Path, capsys) -> None:
        assert verify_env.main(["--env-file", str(tmp_path / "absent.env")]) == 1
        assert "not found" in capsys.readouterr().err


class TestCreateAdmin:
    def test_creates_verified_admin(self, db_session) -> None:
        user, created = ensure_admin(
            db_session,
            email="Root@Example.com",
            username="root",
            password="Adm1n!pass",
        )
        assert created is True
        assert user.role == "admin"
        assert user.email == "root@example.com"
        assert user.email_verified is True
        assert user.display_name == "root"

    def test_promotes_existing_user(self, db_session) -> None:
        existing = make_user(db_session, "carol")
        user, created = ensure_admin(
            db_session, email="carol@example.com", username="carol", password=None
        )
        assert created is False
        assert user.id == existing.id
        assert user.role == "admin"

    def test_short_password_is_rejected(self, db_session) -> None:
        with pytest.raises(ValueError):
            ensure_admin(db_session, email="new@example.com", username="newbie", password="short")


def test_migration_config_points_at_the_migrations_directory() -> None:
    config = build_config("sqlite:///:memory:")
    assert config.get_main_option("script_location") == str(MIGRATIONS_DIR)
    assert config.get_main_option("sqlalchemy.url") == "sqlite:///:memory:"
