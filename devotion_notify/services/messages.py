"""Personalized daily message generation.

Messages come from fixed per-tier pools. Selection is uniform within the
recipient's tier and uses an injectable random.Random so runs can be made
deterministic.
"""

import random
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

TEST_TITLE_PREFIX = "[TEST] "


class ExperienceTier(str, Enum):
    """Recipient experience tiers."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"

    @classmethod
    def parse(cls, value: str | None) -> "ExperienceTier":
        """Resolve a stored tier, falling back to BEGINNER for unknown values."""
        if value:
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.BEGINNER


@dataclass(frozen=True)
class GeneratedMessage:
    """A daily message ready for delivery."""

    title: str
    body: str
    scripture_text: str
    scripture_reference: str

    def with_title_prefix(self, prefix: str) -> "GeneratedMessage":
        return replace(self, title=f"{prefix}{self.title}")

    def to_metadata(self) -> dict[str, Any]:
        """Fields stored in the delivery record metadata."""
        return {
            "verse": self.scripture_text,
            "reference": self.scripture_reference,
        }


MESSAGE_POOLS: dict[ExperienceTier, tuple[GeneratedMessage, ...]] = {
    ExperienceTier.BEGINNER: (
        GeneratedMessage(
            title="Daily Encouragement",
            body="God loves you unconditionally. Take a moment today to feel His presence in your life.",
            scripture_text=(
                "For I know the plans I have for you, declares the Lord, plans to prosper you "
                "and not to harm you, to give you hope and a future."
            ),
            scripture_reference="Jeremiah 29:11",
        ),
        GeneratedMessage(
            title="Finding Peace",
            body="In times of worry, remember that God is with you. Cast your anxieties on Him.",
            scripture_text="Cast all your anxiety on him because he cares for you.",
            scripture_reference="1 Peter 5:7",
        ),
        GeneratedMessage(
            title="God's Love",
            body="You are fearfully and wonderfully made by God. You have incredible worth and purpose.",
            scripture_text=(
                "I praise you because I am fearfully and wonderfully made; your works are "
                "wonderful, I know that full well."
            ),
            scripture_reference="Psalm 139:14",
        ),
    ),
    ExperienceTier.INTERMEDIATE: (
        GeneratedMessage(
            title="Growing in Faith",
            body="Continue to grow in your relationship with God. He is refining you like gold through fire.",
            scripture_text=(
                "In all this you greatly rejoice, though now for a little while you may have "
                "had to suffer grief in all kinds of trials."
            ),
            scripture_reference="1 Peter 1:6",
        ),
        GeneratedMessage(
            title="Serving Others",
            body="Look for opportunities to serve others today. In serving them, you serve Christ.",
            scripture_text=(
                "Whatever you do, work at it with all your heart, as working for the Lord, "
                "not for human masters."
            ),
            scripture_reference="Colossians 3:23",
        ),
        GeneratedMessage(
            title="Walking in Truth",
            body="Let God's word guide your decisions today. His wisdom surpasses all understanding.",
            scripture_text="Trust in the Lord with all your heart and lean not on your own understanding.",
            scripture_reference="Proverbs 3:5",
        ),
    ),
    ExperienceTier.ADVANCED: (
        GeneratedMessage(
            title="Leading Others",
            body="As you mature in faith, remember to lift others up and point them toward Christ.",
            scripture_text="Iron sharpens iron, and one man sharpens another.",
            scripture_reference="Proverbs 27:17",
        ),
        GeneratedMessage(
            title="Deeper Understanding",
            body="Seek to understand God's heart more deeply through prayer and meditation on His word.",
            scripture_text="But when he, the Spirit of truth, comes, he will guide you into all the truth.",
            scripture_reference="John 16:13",
        ),
        GeneratedMessage(
            title="Kingdom Purpose",
            body="You are called to be salt and light in this world. Let your life reflect Christ's love.",
            scripture_text="You are the light of the world. A town built on a hill cannot be hidden.",
            scripture_reference="Matthew 5:14",
        ),
    ),
}


class MessageGenerator:
    """Selects a themed message for a recipient's experience tier.

    Thread Safety: only the RNG holds state, and Random.choice is safe to
    call from worker threads.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def generate(self, tier: ExperienceTier | str | None) -> GeneratedMessage:
        """Pick a message from the tier's pool (beginner for unknown tiers)."""
        if not isinstance(tier, ExperienceTier):
            tier = ExperienceTier.parse(tier)
        return self._rng.choice(MESSAGE_POOLS[tier])
