# quizdeck/schemas.py
from typing import List, Optional, Literal, Tuple
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from quizdeck.Constants import DEFAULT_DEBOUNCE_SECONDS, VOLATILE_FIELDS

# Enum-like Literals
QuestionType = Literal['singleSelect', 'multiSelect']
Theme = Literal['light', 'dark', 'system']
Difficulty = Literal['easy', 'medium', 'hard']
SyncAction = Literal['upload', 'download', 'merge', 'cancel']


# --- Base model: documents are stored with camelCase keys both locally and in the cloud ---
class StoredModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra='allow')

    def to_record(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


# --- Quizzes ---
class QuizQuestion(StoredModel):
    type: QuestionType = 'singleSelect'
    question: str
    options: List[str] = Field(default_factory=list)
    answer: List[int] = Field(default_factory=list) # 0-based indices into options
    explanation: str = ""


class QuizCreationData(StoredModel):
    name: str
    description: str = ""
    questions: List[QuizQuestion] = Field(default_factory=list)
    tags: Optional[List[str]] = None


class CustomQuiz(QuizCreationData):
    id: str
    created_at: str
    updated_at: str
    is_default: Optional[bool] = None


# --- Study sessions ---
class UserAnswer(StoredModel):
    question_index: int
    selected_options: List[int] = Field(default_factory=list)
    is_correct: bool = False
    time_spent: float = 0 # seconds


class QuizSession(StoredModel):
    id: str
    quiz_id: str
    quiz_name: str
    questions: List[QuizQuestion] = Field(default_factory=list)
    user_answers: List[UserAnswer] = Field(default_factory=list)
    start_time: str
    end_time: Optional[str] = None
    score: float = 0
    total_questions: int = 0


# --- Flashcards ---
class FlashCard(StoredModel):
    id: Optional[str] = None
    front: str
    back: str
    deck_id: Optional[str] = None
    difficulty: Optional[Difficulty] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class FlashCardDeckData(StoredModel):
    name: str
    description: str = ""
    cards: List[FlashCard] = Field(default_factory=list)
    tags: Optional[List[str]] = None


class FlashCardDeck(FlashCardDeckData):
    id: str
    created_at: str
    updated_at: str


# --- Settings ---
class AppSettings(StoredModel):
    theme: Theme = 'system'
    auto_submit: bool = False
    animations: bool = True
    reduced_motion: bool = False
    background_animations: bool = True
    sound_effects: bool = False
    show_timer: bool = True
    confirm_before_submit: bool = True
    gemini_api_key: str = "" # plaintext on device; only ciphertext leaves it

    def to_record(self) -> dict:
        return self.model_dump(by_alias=True)


def default_settings() -> dict:
    return AppSettings().to_record()


# --- Cloud metadata marker ---
class UserMetadata(StoredModel):
    created_at: Optional[str] = None
    last_sync: Optional[str] = None


# --- Sync tuning (from the [sync] config section) ---
class SyncConfig(BaseModel):
    enabled: bool = True
    debounce_seconds: float = Field(DEFAULT_DEBOUNCE_SECONDS, ge=0)
    volatile_fields: Tuple[str, ...] = VOLATILE_FIELDS
