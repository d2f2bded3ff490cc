from pydantic import BaseModel, Field


class FeedbackPayload(BaseModel):
    score: int | None = Field(default=None, ge=0, le=100)
    transcript_en: str = ""
    tips_es: list[str] = Field(min_length=3, max_length=3)
