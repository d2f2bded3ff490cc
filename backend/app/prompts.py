# ----------- Feedback Shape -----------

FEEDBACK_JSON_EXAMPLE = (
    '{"score":<0-100>,"transcript_en":"<what you understood the learner say, in English>",'
    '"tips_es":["tip 1","tip 2","tip 3"]}'
)

# ----------- Session Prompt -----------

SYSTEM_PROMPT = """
You are "Coach", a pronunciation tutor for Spanish speakers (B2 level).

Strict rules:
1) In AUDIO always speak ENGLISH: say the target phrase slowly (marking the stressed syllable), then at natural pace.
2) Feedback tips go ONLY in SPANISH, inside a JSON object. Never use Spanish in the audio.
3) Evaluate what the LEARNER actually said (do not assume they said the target phrase).
4) When asked for text, return ONLY a JSON object with: {score, transcript_en, tips_es}.
"""

# ----------- Response Prompts -----------

AUDIO_PROMPT = """
Provide spoken feedback only. Say the target phrase twice:
1) Slow, with primary stress marked naturally in your prosody.
2) Natural pace.
Do NOT include Spanish in audio.
"""

JSON_PROMPT = f"""
Return ONLY the JSON (no extra text, no markdown) with exactly this shape:
{FEEDBACK_JSON_EXAMPLE}
- 'tips_es' must be 3 concise, actionable recommendations in Spanish.
- 'transcript_en' is your English transcription of what the LEARNER said.
- Evaluate the LAST spoken turn of the LEARNER (not yours).
"""

RESPONSE_SEPARATOR = "---"


def _with_phrase(prompt: str, phrase: str) -> str:
    return f"{prompt.strip()}\nTarget phrase: {phrase}"


def build_system_instructions(phrase: str) -> str:
    return _with_phrase(SYSTEM_PROMPT, phrase)


def build_audio_instructions(phrase: str) -> str:
    return _with_phrase(AUDIO_PROMPT, phrase)


def build_json_instructions(phrase: str) -> str:
    return _with_phrase(JSON_PROMPT, phrase)


def build_response_instructions(phrase: str) -> str:
    return "\n".join([
        build_audio_instructions(phrase),
        RESPONSE_SEPARATOR,
        "Now return ONLY the requested JSON, with no extra text.",
        build_json_instructions(phrase),
    ])
