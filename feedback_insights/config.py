"""Application configuration with comprehensive validation."""
from typing import Optional, Literal, List, Dict
from functools import lru_cache
from pydantic import Field, field_validator, model_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


# =============================================================================
# CORE COMPETENCY FRAMEWORK
# =============================================================================
# Display order of the seven core competencies plus the key aspects the
# oracle is asked to look for. Aggregate insights are ordered by this list.
# =============================================================================

CORE_COMPETENCIES: Dict[str, Dict[str, object]] = {
    "TECHNICAL": {
        "name": "Technical/Functional Expertise",
        "aspects": [
            "Role-specific skills and knowledge",
            "Industry and domain expertise",
            "Technical proficiency and best practices",
            "Knowledge sharing and documentation",
            "Problem-solving capabilities",
        ],
    },
    "LEADERSHIP": {
        "name": "Leadership & Influence",
        "aspects": [
            "Taking initiative and ownership",
            "Guiding and inspiring others",
            "Influencing outcomes positively",
            "Mentoring and role modeling",
            "Creating and communicating vision",
        ],
    },
    "COLLABORATION": {
        "name": "Collaboration & Communication",
        "aspects": [
            "Information sharing effectiveness",
            "Cross-team collaboration",
            "Clarity of communication",
            "Stakeholder management",
            "Conflict resolution skills",
        ],
    },
    "INNOVATION": {
        "name": "Innovation & Problem-Solving",
        "aspects": [
            "Creative solution generation",
            "Adaptability to change",
            "Initiative in improvements",
            "Collaborative ideation",
            "Impact of implemented solutions",
        ],
    },
    "EXECUTION": {
        "name": "Execution & Accountability",
        "aspects": [
            "Meeting deadlines and commitments",
            "Quality of deliverables",
            "Ownership of outcomes",
            "Problem resolution",
            "Project completion track record",
        ],
    },
    "EMOTIONAL_INTELLIGENCE": {
        "name": "Emotional Intelligence & Culture Fit",
        "aspects": [
            "Self-awareness and emotional control",
            "Empathy and understanding of others",
            "Cultural sensitivity and alignment",
            "Interpersonal effectiveness",
            "Team morale impact and relationship building",
        ],
    },
    "GROWTH": {
        "name": "Growth & Development",
        "aspects": [
            "Continuous learning mindset",
            "Professional skill development",
            "Feedback receptiveness and application",
            "Career growth initiatives",
            "Knowledge sharing and mentoring",
        ],
    },
}

COMPETENCY_ORDER: List[str] = [c["name"] for c in CORE_COMPETENCIES.values()]


def get_competency_aspects(name: str) -> List[str]:
    """
    Get the key aspects for a competency by display name.

    Args:
        name: Competency display name (e.g., "Leadership & Influence")

    Returns:
        List of aspects, or an empty list if the name is not a core competency
    """
    name_lower = name.lower().strip()
    for mapping in CORE_COMPETENCIES.values():
        if str(mapping["name"]).lower() == name_lower:
            return list(mapping["aspects"])
    return []


class Settings(BaseSettings):
    """Application settings with production-grade validation."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Feedback Insights Engine"
    APP_VERSION: str = "1.0.0"
    APP_ENV: Literal["development", "staging", "production"] = "development"
    DEBUG: bool = False
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    LOG_FORMAT: Literal["json", "console"] = "json"

    # API
    API_V1_PREFIX: str = "/api/v1"

    # Redis snapshot store
    REDIS_URL: str = "redis://localhost:6379/0"
    CACHE_TTL_SNAPSHOTS: int = Field(default=0, ge=0)  # 0 = never expire

    # LLM oracle (OpenAI-compatible chat completions)
    OPENAI_API_KEY: Optional[SecretStr] = None
    LLM_BASE_URL: str = "https://api.openai.com/v1"
    DEFAULT_LLM_MODEL: str = "gpt-4o"
    LLM_TIMEOUT_SECONDS: float = Field(default=60.0, ge=1.0, le=600.0)
    LLM_TEMPERATURE: float = Field(default=0.3, ge=0.0, le=2.0)

    # Analysis gating
    MIN_REVIEWS_REQUIRED: int = Field(default=5, ge=1, le=100)
    MIN_REVIEWS_PER_GROUP: int = Field(default=2, ge=1, le=50)
    EVIDENCE_SATURATION_COUNT: int = Field(default=15, ge=1, le=100)

    # Relationship base weights
    W_SENIOR: float = Field(default=0.40, ge=0.0, le=1.0)
    W_PEER: float = Field(default=0.35, ge=0.0, le=1.0)
    W_JUNIOR: float = Field(default=0.25, ge=0.0, le=1.0)

    @field_validator("OPENAI_API_KEY")
    @classmethod
    def validate_openai_key(cls, v: Optional[SecretStr]) -> Optional[SecretStr]:
        if v is not None and not v.get_secret_value().startswith("sk-"):
            raise ValueError("Invalid OpenAI API key format")
        return v

    @model_validator(mode="after")
    def validate_relationship_weights(self):
        """Validate relationship base weights sum to 1.0."""
        total = self.W_SENIOR + self.W_PEER + self.W_JUNIOR
        if abs(total - 1.0) > 0.001:
            raise ValueError(f"Relationship weights must sum to 1.0, got {total}")
        return self

    @model_validator(mode="after")
    def validate_production_settings(self):
        """Ensure production has required settings."""
        if self.APP_ENV == "production":
            if self.DEBUG:
                raise ValueError("DEBUG must be False in production")
            if not self.OPENAI_API_KEY:
                raise ValueError("An LLM API key is required in production")
        return self

    @property
    def relationship_weights(self) -> Dict[str, float]:
        """Get relationship base weights keyed by relationship type."""
        return {
            "senior": self.W_SENIOR,
            "peer": self.W_PEER,
            "junior": self.W_JUNIOR,
        }


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
