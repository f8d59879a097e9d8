"""
Configuration de l'application via variables d'environnement.
Utilise Pydantic BaseSettings pour le chargement et la validation.
"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Paramètres de l'application chargés depuis l'environnement."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    openai_api_key: Optional[str] = None
    """Clé API OpenAI. Sans clé, le fallback IA est désactivé."""

    llm_model: str = "gpt-4o-mini"
    """Modèle utilisé par le fallback IA."""

    ai_fallback_enabled: bool = True
    ai_confidence_threshold: int = 80
    """Le fallback IA n'est sollicité que si la confiance locale est inférieure à ce seuil."""

    ai_timeout_seconds: float = 12.0
    ai_max_chars: int = 4000
    """Longueur maximale du texte envoyé au modèle."""

    log_level: str = "INFO"

    @property
    def ai_available(self) -> bool:
        return self.ai_fallback_enabled and bool(self.openai_api_key)


def get_settings() -> Settings:
    """Retourne l'instance des settings (singleton implicite via dépendance FastAPI)."""
    return Settings()
