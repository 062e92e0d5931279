"""Runtime tuning knobs for sessions, economy and timing."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from pinyin_typing.models import Category


class GameSettings(BaseSettings):
    """Game configuration, overridable through ``PINYIN_TYPING_*`` variables.

    Instances are shared by reference: the settings UI mutates fields in place
    and sessions read them at the moment they need a value.
    """

    model_config = SettingsConfigDict(
        env_prefix="PINYIN_TYPING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        validate_assignment=True,
    )

    # Economy
    money_per_letter: float = Field(default=0.05, ge=0)
    penalty_per_error: float = Field(default=0.0, ge=0)

    # Health; max_health == 0 disables failure entirely.
    max_health: int = Field(default=5, ge=0)
    health_per_error: int = Field(default=1, ge=0)
    cost_per_health: float = Field(default=5.0, ge=0)

    # Seconds; 0 means no time limit.
    game_time_limit: float = Field(default=0.0, ge=0)

    # Rewards
    combo_bonus_threshold: int = Field(default=10, ge=0)
    combo_bonus_money: float = Field(default=0.1, ge=0)
    random_reward_chance: float = Field(default=0.05, ge=0, le=1)
    random_reward_min: float = Field(default=0.5, ge=0)
    random_reward_max: float = Field(default=1.0, ge=0)
    random_treasure_chance: float = Field(default=0.01, ge=0, le=1)
    random_treasure_min: float = Field(default=0.01, ge=0)
    random_treasure_max: float = Field(default=0.03, ge=0)
    random_meteor_chance: float = Field(default=0.01, ge=0, le=1)
    random_meteor_min: float = Field(default=0.01, ge=0)
    random_meteor_max: float = Field(default=0.02, ge=0)
    milestone_letter_count: int = Field(default=50, ge=0)
    milestone_bonus_money: float = Field(default=1.0, ge=0)
    fire_effect_threshold: int = Field(default=30, ge=0)

    # Delays after the completed item has been spoken, per content mode.
    delay_standard: float = Field(default=0.2, ge=0)
    delay_article: float = Field(default=0.2, ge=0)
    delay_xiehouyu: float = Field(default=0.2, ge=0)
    delay_hard: float = Field(default=0.2, ge=0)

    # Narration
    delay_before_speak: float = Field(default=0.0, ge=0)
    single_char_speed_multiplier: float = Field(default=2.0, gt=0)
    tts_enabled: bool = True

    # Feedback timers
    key_clear_delay: float = Field(default=0.2, ge=0)
    wrong_clear_delay: float = Field(default=0.4, ge=0)
    game_over_delay: float = Field(default=0.5, ge=0)
    practice_hit_delay: float = Field(default=0.3, ge=0)

    @property
    def health_cost(self) -> int:
        """Whole coins needed to buy one health point."""

        return int(self.cost_per_health)

    def post_completion_delay(self, category: Category | None) -> float:
        """Return the pause between speaking a completed item and advancing."""

        if category is Category.ARTICLE:
            return self.delay_article
        if category is Category.HARD:
            return self.delay_hard
        if category is Category.XIEHOUYU:
            return self.delay_xiehouyu
        return self.delay_standard
