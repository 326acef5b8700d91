from pydantic import BaseModel, Field
from typing import List, Literal, Optional

LessonLevel = Literal["beginner", "intermediate", "advanced"]


class TranscriptAnalysis(BaseModel):
    word_count: int
    wpm: int = Field(..., description="Words per minute")
    filler_count: int
    filler_words: List[str] = Field(default_factory=list, description="Filler occurrences in order of the filler list")
    filler_ratio: float = Field(..., description="Fillers per 100 words")
    vocabulary_diversity: float = Field(..., description="Unique words per 100 words")
    avg_words_per_sentence: float
    issues: List[str] = Field(default_factory=list, description="Detected delivery issue tags")
    lesson_level: Optional[LessonLevel] = Field(None, description="Level of the lesson the answer belongs to")
