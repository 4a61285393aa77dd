from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError


def _environment_default() -> str:
	# NODE_ENV is still honoured for deployments carried over from the Node service
	return os.getenv("ENVIRONMENT") or os.getenv("NODE_ENV") or "development"


class AppSettings(BaseModel):
	environment: str = Field(default_factory=_environment_default)
	log_level: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

	# HTTP server
	host: str = Field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
	port: int = Field(default_factory=lambda: int(os.getenv("PORT", "3000")))

	# AssemblyAI
	assemblyai_api_key: str = Field(default_factory=lambda: os.getenv("ASSEMBLYAI_API_KEY", ""))
	assemblyai_base_url: str = Field(default_factory=lambda: os.getenv("ASSEMBLYAI_BASE_URL", "https://api.assemblyai.com"))
	assemblyai_poll_interval_seconds: float = Field(default_factory=lambda: float(os.getenv("ASSEMBLYAI_POLL_INTERVAL_SECONDS", "3")))
	assemblyai_poll_timeout_seconds: float = Field(default_factory=lambda: float(os.getenv("ASSEMBLYAI_POLL_TIMEOUT_SECONDS", "1800")))
	transcription_language: str = Field(default_factory=lambda: os.getenv("TRANSCRIPTION_LANGUAGE", "pt"))

	# Resource limits
	max_video_duration_minutes: int = Field(default_factory=lambda: int(os.getenv("MAX_VIDEO_DURATION_MINUTES", "30")))

	# Scratch files and the stale-file sweep
	temp_dir: str = Field(default_factory=lambda: os.getenv("TEMP_DIR", "temp"))
	scratch_max_age_seconds: int = Field(default_factory=lambda: int(os.getenv("SCRATCH_MAX_AGE_SECONDS", "3600")))
	sweep_interval_seconds: int = Field(default_factory=lambda: int(os.getenv("SWEEP_INTERVAL_SECONDS", "3600")))

	@property
	def is_production(self) -> bool:
		return self.environment.lower() == "production"

	@property
	def provider_configured(self) -> bool:
		return bool(self.assemblyai_api_key.strip())


_cached_settings: Optional[AppSettings] = None


def _is_test_env() -> bool:
	return _environment_default().lower() == "test"


def load_settings(dotenv_path: Optional[str | Path] = None) -> AppSettings:
	"""
	Load environment variables and return validated settings with sensible defaults.

	Precedence: passed dotenv_path (if provided) → .env in CWD (if exists) → OS env.
	"""
	global _cached_settings
	# In test environment, always reload settings to honor env overrides set by tests
	if not _is_test_env() and _cached_settings is not None:
		return _cached_settings

	if dotenv_path is not None:
		load_dotenv(dotenv_path)
	else:
		default_env = Path(".env")
		if default_env.exists():
			load_dotenv(default_env)

	try:
		settings = AppSettings()
	except (ValidationError, ValueError) as e:
		raise RuntimeError(f"Invalid configuration: {e}")

	if settings.max_video_duration_minutes < 1:
		raise RuntimeError("Invalid configuration: MAX_VIDEO_DURATION_MINUTES must be positive")

	if not _is_test_env():
		_cached_settings = settings
	return settings


def get_settings() -> AppSettings:
	return load_settings()


def reset_settings_cache() -> None:
	global _cached_settings
	_cached_settings = None
