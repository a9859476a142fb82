import asyncio
import glob
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from .config import settings
from .errors import ContentGenerationFailure
from .models import Feedback, FeedbackType

logger = logging.getLogger(__name__)

PLACEHOLDER_WORD = "Type a topic or use the default text"
COMPLETED_WORD = "🎉 Text complete!"


# --- Keyword tables ---
@dataclass(frozen=True)
class KeywordRule:
    keywords: Tuple[str, ...]
    label: str
    require_all: bool = False

    def matches(self, lowered_text: str) -> bool:
        hits = (keyword.lower() in lowered_text for keyword in self.keywords)
        return all(hits) if self.require_all else any(hits)


class KeywordTable:
    """Ordered (keywords, label) rules; the first matching rule wins."""

    def __init__(self, rules: Sequence[KeywordRule], default: str):
        self.rules = list(rules)
        self.default = default

    def lookup(self, text: str) -> str:
        lowered = text.lower()
        for rule in self.rules:
            if rule.matches(lowered):
                return rule.label
        return self.default


TOPIC_LABELS = KeywordTable(
    [
        KeywordRule(("reading", "read"), "Reading and comprehension techniques"),
        KeywordRule(("photosynthesis", "plants"), "Photosynthesis in plants"),
        KeywordRule(("brazil", "history"), "History and development of Brazil"),
        KeywordRule(("programming", "code"), "Programming and software development"),
        KeywordRule(
            ("artificial intelligence", "machine learning"),
            "Artificial intelligence and its applications",
        ),
    ],
    default="Developing skills and knowledge",
)

CENTRAL_IDEAS = KeywordTable(
    [
        KeywordRule(
            ("reading", "speed"),
            "Speed reading can be developed with practice",
            require_all=True,
        ),
        KeywordRule(("photosynthesis",), "Photosynthesis is essential for life on Earth"),
        KeywordRule(
            ("brazil", "history"),
            "Brazil went through many historical transformations",
            require_all=True,
        ),
        KeywordRule(("programming",), "Programming means solving problems with code"),
        KeywordRule(
            ("artificial intelligence",),
            "AI is transforming many areas of society",
        ),
    ],
    default="Knowledge grows through study and practice",
)


# --- Feedback table ---
class FeedbackTable:
    def __init__(self, entries: Dict[FeedbackType, Tuple[str, List[str]]]):
        missing = set(FeedbackType) - set(entries)
        if missing:
            raise ValueError(f"Feedback table is missing {sorted(m.value for m in missing)}")
        self.entries = dict(entries)

    def get(self, feedback_type: FeedbackType) -> Feedback:
        message, suggestions = self.entries[feedback_type]
        return Feedback(type=feedback_type, message=message, suggestions=list(suggestions))


DEFAULT_FEEDBACK = FeedbackTable(
    {
        FeedbackType.BALANCED: (
            "Excellent! You are keeping a high speed with great comprehension. Keep it up!",
            [
                "Try raising the speed gradually",
                "Keep your focus on comprehension",
                "Practice with more complex texts",
            ],
        ),
        FeedbackType.COMPREHENSION_HIGH: (
            "Great comprehension! Now you can try raising the speed gradually.",
            [
                "Increase the speed by 50 PPM",
                "Keep the quality of your comprehension",
                "Practice regularly",
            ],
        ),
        FeedbackType.IMPROVEMENT: (
            "Good comprehension! Try lowering the speed a little to understand more.",
            [
                "Decrease the speed by 50 PPM",
                "Focus on comprehension first",
                "Practice with simpler texts",
            ],
        ),
        FeedbackType.COMPREHENSION_LOW: (
            "Focus on comprehension first. Slow down and practice with simpler texts.",
            [
                "Start with lower speeds (200-250 PPM)",
                "Practice with shorter texts",
                "Use focus mode to reduce distractions",
            ],
        ),
    }
)


# --- Paragraph content ---
DEFAULT_PARAGRAPHS: List[Tuple[Tuple[str, ...], str]] = [
    (
        ("photosynthesis", "plants"),
        "Photosynthesis is a fundamental biological process carried out by plants, "
        "algae and some bacteria. During this process, organisms convert light energy, "
        "usually from the sun, into chemical energy stored in glucose molecules. "
        "Photosynthesis happens mainly in the leaves, inside chloroplasts, organelles "
        "that contain chlorophyll. The basic equation is: 6CO2 + 6H2O + light energy "
        "→ C6H12O6 + 6O2. This process is essential for life on Earth, because it "
        "produces oxygen and forms the base of the food chain.",
    ),
    (
        ("brazil", "history"),
        "The history of Brazil is rich and complex, beginning with the indigenous "
        "peoples who lived in the territory for thousands of years. In 1500, Pedro "
        "Álvares Cabral arrived in Brazil, starting the Portuguese colonial period. "
        "From the sixteenth to the eighteenth century, Brazil was exploited mainly "
        "for brazilwood, sugar cane and gold mining. Slave labour was widely used, "
        "forcibly bringing millions of Africans. In 1822, Dom Pedro I declared the "
        "independence of Brazil. The imperial period lasted until 1889, when the "
        "Republic was proclaimed.",
    ),
    (
        ("programming", "code"),
        "Programming is the process of creating instructions for computers to carry "
        "out specific tasks. It involves writing code in programming languages such "
        "as Python, Java, JavaScript, C++ and many others. Each language has its own "
        "syntax rules and suits different kinds of projects. The fundamental concepts "
        "include variables, control structures, functions, algorithms and data "
        "structures. Object-oriented programming organizes code into classes and "
        "objects, making maintenance and reuse easier.",
    ),
    (
        ("artificial intelligence", "machine learning"),
        "Artificial Intelligence (AI) is a field of computer science that seeks to "
        "build systems able to perform tasks that normally require human intelligence. "
        "This includes learning, reasoning, perception, natural language understanding "
        "and decision making. Modern AI relies on techniques such as machine learning, "
        "deep learning and artificial neural networks. Machine learning lets systems "
        "learn patterns from data without explicit programming. Deep learning uses "
        "deep neural networks to process complex information.",
    ),
]

FALLBACK_PARAGRAPH = (
    "{topic} is a fascinating subject that deserves in-depth study. This field of "
    "knowledge covers many theoretical and practical aspects that are fundamental "
    "to understanding its importance. Experts spend years of research unravelling "
    "the mysteries and complexities related to {topic}. Through rigorous scientific "
    "methods, it is possible to analyse different perspectives and approaches. The "
    "practical application of this knowledge has a significant impact on our society."
)


class ContentProvider(ABC):
    """Source of reading material for a topic."""

    @abstractmethod
    async def lookup_paragraph(self, topic: str) -> str:
        pass


class ParagraphLibrary(ContentProvider):
    """Keyword-matched paragraphs, built in and extended from CSV files.

    Each CSV in `directory` needs `keywords` and `paragraph` columns; keywords
    are separated by `|`. Rows from CSV files are checked before the built-in
    table.
    """

    def __init__(
        self,
        directory: Optional[str] = None,
        delay_ms: int = settings.GENERATION_DELAY_MS,
    ):
        self.directory = directory if directory is not None else settings.CONTENT_DIR
        self.delay_ms = delay_ms
        self.entries: List[Tuple[Tuple[str, ...], str]] = []
        self.load_all()

    def load_all(self):
        loaded: List[Tuple[Tuple[str, ...], str]] = []
        csv_files = sorted(glob.glob(os.path.join(self.directory, "*.csv")))
        for file_path in csv_files:
            try:
                file_name = os.path.splitext(os.path.basename(file_path))[0]
                df = pd.read_csv(file_path, encoding="utf-8")
                if "keywords" in df.columns and "paragraph" in df.columns:
                    df = df.dropna(subset=["keywords", "paragraph"])
                    for row in df.to_dict("records"):
                        keywords = tuple(
                            k.strip().lower()
                            for k in str(row["keywords"]).split("|")
                            if k.strip()
                        )
                        if keywords:
                            loaded.append((keywords, str(row["paragraph"])))
                    logger.info(f"Loaded {len(df)} paragraphs from {file_name}")
                else:
                    logger.error(f"Skipping {file_name}: Missing columns.")
            except (OSError, ValueError) as e:
                logger.error(f"Failed to load {file_path}: {e}")

        self.entries = loaded + DEFAULT_PARAGRAPHS

    def paragraph_for(self, topic: str) -> str:
        if not topic or not topic.strip():
            raise ContentGenerationFailure("Topic is empty.")
        lowered = topic.lower()
        for keywords, paragraph in self.entries:
            if any(keyword in lowered for keyword in keywords):
                return paragraph
        return FALLBACK_PARAGRAPH.format(topic=topic.strip())

    async def lookup_paragraph(self, topic: str) -> str:
        if self.delay_ms > 0:
            await asyncio.sleep(self.delay_ms / 1000)
        return self.paragraph_for(topic)
