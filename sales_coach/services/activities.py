"""
Activity generation service
Builds learning-path activities (slides, quizzes, flashcards, fill-in-the-
blanks, matching, embeds) from topic sections with LLM calls.
"""
import logging
from collections import OrderedDict
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from pydantic import ValidationError

from sales_coach.models.learning_path import (
    Activity,
    ActivityType,
    EmbedConfig,
    FillBlanksConfig,
    FlashcardConfig,
    MatchingConfig,
    QuizConfig,
    SlideConfig,
    parse_activity,
)
from sales_coach.utils.markdown import DEFAULT_SECTION_TITLE
from sales_coach.utils.parser import DocumentParser
from sales_coach.utils.timeout import fetch_bytes

logger = logging.getLogger(__name__)

ACTIVITIES_TABLE = "activities"

# Prompt content is cut to this many characters to stay within token limits.
PROMPT_CONTENT_LIMIT = 4000
GENERATION_TEMPERATURE = 0.7

FILL_BLANKS_INSTRUCTION = "Fill in the blanks with the correct terms."
MATCHING_INSTRUCTION = "Match the items in the left column with their corresponding items in the right column."

NARRATION_PROMPT = """
Convert the following educational content into a clear, engaging narration script
that could be read aloud. Keep the narration conversational and accessible.
Make it sound natural but maintain all the important information.
Keep it concise and to the point.

CONTENT:
{content}
"""

QUIZ_PROMPT = """
Based on the following educational content, create 3-5 multiple-choice quiz questions.
For each question, provide 4 options and indicate the correct answer.
Also include a brief explanation for why the answer is correct.
Format your response as a JSON array of objects with the following structure:
[
  {{
    "question": "Question text here?",
    "options": ["Option A", "Option B", "Option C", "Option D"],
    "correct_answer": 0,
    "explanation": "Brief explanation of why this answer is correct"
  }}
]
"correct_answer" is the 0-based index of the correct option.

CONTENT:
{content}
"""

FLASHCARD_PROMPT = """
Based on the following educational content, create 5-8 flashcards.
Each flashcard should have a front side with a term, concept, or question,
and a back side with the definition, explanation, or answer.
Format your response as a JSON array of objects with the following structure:
[
  {{"front": "Term or question", "back": "Definition or answer"}}
]

CONTENT:
{content}
"""

FILL_BLANKS_PROMPT = """
Based on the following educational content, create a fill-in-the-blanks exercise.
Create a paragraph with 3-5 key terms or concepts replaced with blanks (represented by _____).
For each blank, provide the correct answer(s) that could fill it.
Format your response as a JSON object with the following structure:
{{
  "instruction": "Fill in the blanks with the correct terms.",
  "text_with_blanks": "The _____ is a fundamental concept in...",
  "blanks": [
    {{"position": 0, "correct_answers": ["term", "similar acceptable answer"]}}
  ]
}}
"position" is the 0-based index of the blank in the text.

CONTENT:
{content}
"""

MATCHING_PROMPT = """
Based on the following educational content, create a matching exercise.
Create 5-8 pairs of related terms, concepts, or phrases that should be matched.
Format your response as a JSON object with the following structure:
{{
  "instruction": "Match the items in the left column with their corresponding items in the right column.",
  "pairs": [
    {{"left": "Term or concept", "right": "Definition or related concept"}}
  ]
}}

CONTENT:
{content}
"""

DOCUMENT_SYSTEM_PROMPT = """You are an educational-content expert.

Your task is to turn any uploaded document, regardless of format, into a coherent learning path that still uses the activity schema."""

DOCUMENT_PROMPT = """**Key rules (DO NOT VIOLATE front-end contracts)**

1. Output a single valid JSON object with an 'activities' array.

2. Each activity must include title, description, type and config, where type is one of
slide, quiz, flashcard, fill_blanks, matching and config matches:

slide: {{"content": "HTML content for the slide, MIN 1500 characters", "narration": "Optional narration text"}}
quiz: {{"question": "Question text", "options": ["Option 1", "Option 2", "Option 3", "Option 4"], "correct_answer": 0, "explanation": "Explanation of the correct answer", "narration": "Optional narration text"}}
flashcard: {{"cards": [{{"front": "Term or question", "back": "Definition or answer"}}], "narration": "Optional narration text"}}
fill_blanks: {{"instruction": "Instructions for the exercise", "text_with_blanks": "Text with _____ placeholders", "blanks": [{{"position": 0, "correct_answers": ["answer1", "answer2"]}}], "narration": "Optional narration text"}}
matching: {{"instruction": "Instructions for matching", "pairs": [{{"left": "Item to match", "right": "Corresponding match"}}], "narration": "Optional narration text"}}

3. Add a narration provided that the learner has 5 years of sales experience in B2B SaaS industry.

**Sequencing & quality guidelines**

A. Decide an order that teaches from the simplest concepts to applied scenarios.
B. Avoid repeating the same activity type back-to-back unless pedagogically necessary.
C. Summarise long or complex sections concisely; do not paste huge blocks.
D. Use the activity description to explain how it connects to the previous one.
E. Assume the learner is a newcomer to the topic unless the text clearly states otherwise.
F. Treat headings, bullet points and tables generically.

Return only the JSON; no commentary.

DOCUMENT ({file_name}):
{content}
"""

DOCUMENT_CONTENT_LIMIT = 60000


def group_sections_by_title(sections: List[Dict[str, Any]]) -> "OrderedDict[str, List[Dict[str, Any]]]":
    """
    Group stored sections by their metadata title, each group ordered by
    chunk index. Groups keep the order in which titles first appear.
    """
    groups: "OrderedDict[str, List[Dict[str, Any]]]" = OrderedDict()
    for section in sections:
        title = (section.get("metadata") or {}).get("title") or DEFAULT_SECTION_TITLE
        groups.setdefault(title, []).append(section)

    for grouped in groups.values():
        grouped.sort(key=lambda s: (s.get("metadata") or {}).get("chunkIndex") or 0)
    return groups


def _combined_content(sections: List[Dict[str, Any]]) -> str:
    return "\n\n".join(s.get("content_markdown") or "" for s in sections)


class ActivityGenerator:
    """Creates activities for a learning path and stores them."""

    def __init__(self, llm_service, database, parser: Optional[DocumentParser] = None, fetch_timeout: float = 30.0):
        self.llm = llm_service
        self.database = database
        self.parser = parser or DocumentParser()
        self.fetch_timeout = fetch_timeout

    async def create_activity(
        self,
        learning_path_id: str,
        title: str,
        description: str,
        activity_type: ActivityType,
        config: Any,
    ) -> str:
        """
        Validate and store one activity.

        Returns:
            The stored activity id
        """
        payload = config.model_dump(exclude_none=True) if hasattr(config, "model_dump") else config
        activity = parse_activity({"title": title, "description": description, "type": activity_type, "config": payload})
        row = await self.database.insert_one(
            ACTIVITIES_TABLE,
            {
                "title": activity.title,
                "description": activity.description,
                "type": activity.type,
                "config": activity.config.model_dump(exclude_none=True),
                "learning_path_id": learning_path_id,
            },
        )
        return str(row.get("id"))

    async def _ask(self, system: str, prompt: str, content: str) -> Any:
        messages = [
            {"role": "system", "content": system},
            {"role": "user", "content": prompt.format(content=content[:PROMPT_CONTENT_LIMIT])},
        ]
        return await self.llm.complete_json(messages, temperature=GENERATION_TEMPERATURE)

    async def generate_narration(self, content: str) -> str:
        return await self.llm.generate(
            NARRATION_PROMPT.format(content=content[:PROMPT_CONTENT_LIMIT]),
            system_prompt="You are an expert at creating clear, engaging narration for educational content.",
            temperature=GENERATION_TEMPERATURE,
        )

    async def generate_slide_activity(self, learning_path_id: str, title: str, content: str) -> str:
        narration = await self.generate_narration(content)
        config = SlideConfig(content=content, title=title, narration=narration)
        return await self.create_activity(learning_path_id, title, f"Slide: {title}", "slide", config)

    async def generate_quiz_activities(self, learning_path_id: str, title: str, content: str) -> List[str]:
        """One activity per generated question; unusable questions are dropped."""
        questions = await self._ask(
            "You are an educational content creator specializing in creating effective quiz questions.",
            QUIZ_PROMPT,
            content,
        )
        if not isinstance(questions, list):
            logger.warning("[Activities] quiz reply was not a list")
            return []

        activity_ids = []
        for number, question in enumerate(questions, start=1):
            try:
                config = QuizConfig.model_validate(question)
            except ValidationError as e:
                logger.warning(f"[Activities] dropping quiz question {number}: {e.error_count()} errors")
                continue
            activity_ids.append(
                await self.create_activity(
                    learning_path_id,
                    f"{title} - Quiz Question {number}",
                    config.question,
                    "quiz",
                    config,
                )
            )
        return activity_ids

    async def generate_flashcard_activity(self, learning_path_id: str, title: str, content: str) -> str:
        cards = await self._ask(
            "You are an educational content creator specializing in creating effective flashcards.",
            FLASHCARD_PROMPT,
            content,
        )
        if not isinstance(cards, list):
            cards = []
        config = FlashcardConfig.model_validate({"cards": cards})
        return await self.create_activity(
            learning_path_id, f"{title} - Flashcards", f"Flashcards for: {title}", "flashcard", config
        )

    async def generate_fill_blanks_activity(self, learning_path_id: str, title: str, content: str) -> str:
        data = await self._ask(
            "You are an educational content creator specializing in creating effective fill-in-the-blanks exercises.",
            FILL_BLANKS_PROMPT,
            content,
        )
        try:
            config = FillBlanksConfig.model_validate(data)
        except ValidationError:
            logger.warning("[Activities] fill-in-the-blanks reply unusable, storing placeholder")
            config = FillBlanksConfig(
                instruction=FILL_BLANKS_INSTRUCTION,
                text_with_blanks="Error generating exercise.",
                blanks=[],
            )
        return await self.create_activity(
            learning_path_id,
            f"{title} - Fill in the Blanks",
            f"Fill in the blanks exercise for: {title}",
            "fill_blanks",
            config,
        )

    async def generate_matching_activity(self, learning_path_id: str, title: str, content: str) -> str:
        data = await self._ask(
            "You are an educational content creator specializing in creating effective matching exercises.",
            MATCHING_PROMPT,
            content,
        )
        try:
            config = MatchingConfig.model_validate(data)
        except ValidationError:
            logger.warning("[Activities] matching reply unusable, storing placeholder")
            config = MatchingConfig(instruction=MATCHING_INSTRUCTION, pairs=[])
        return await self.create_activity(
            learning_path_id,
            f"{title} - Matching Exercise",
            f"Matching exercise for: {title}",
            "matching",
            config,
        )

    async def create_embed_activity(self, learning_path_id: str, title: str, url: str, embed_type: str) -> str:
        label = "Video" if embed_type == "video" else "Article"
        config = EmbedConfig(url=url, title=title, embed_type=embed_type)
        return await self.create_activity(learning_path_id, f"{title} - {label}", f"{label}: {title}", "embed", config)

    async def generate_for_topic(self, learning_path_id: str, sections: List[Dict[str, Any]]) -> List[str]:
        """
        Generate the activities of a learning path from a topic's sections.

        Each title group gets a narrated slide; longer groups also get
        flashcards (over 1000 chars), fill-in-the-blanks (800-3000 chars) and
        a matching exercise (when the text has ':' or '-'). Quiz questions
        over all content are added when there are at least 3 sections. A
        group whose generation fails is logged and skipped.

        Returns:
            Ids of the created activities
        """
        if not sections:
            return []

        activity_ids: List[str] = []
        for title, grouped in group_sections_by_title(sections).items():
            content = _combined_content(grouped)
            try:
                activity_ids.append(await self.generate_slide_activity(learning_path_id, title, content))

                if len(content) > 500:
                    if len(content) > 1000:
                        activity_ids.append(await self.generate_flashcard_activity(learning_path_id, title, content))
                    if 800 < len(content) < 3000:
                        activity_ids.append(
                            await self.generate_fill_blanks_activity(learning_path_id, title, content)
                        )
                    if ":" in content or "-" in content:
                        activity_ids.append(await self.generate_matching_activity(learning_path_id, title, content))
            except Exception as e:
                logger.error(f"[Activities] failed creating activities for section '{title}': {e}")

        if len(sections) >= 3:
            first_title = (sections[0].get("metadata") or {}).get("title") or "Topic Content"
            try:
                activity_ids.extend(
                    await self.generate_quiz_activities(
                        learning_path_id, f"Quiz on {first_title}", _combined_content(sections)
                    )
                )
            except Exception as e:
                logger.error(f"[Activities] failed generating quiz activities: {e}")

        logger.info(f"[Activities] path {learning_path_id}: {len(activity_ids)} activities created")
        return activity_ids

    async def generate_from_document(self, document_url: str) -> List[Activity]:
        """
        Draft a full activity list from a document URL without storing it.

        Returns:
            The activities that validate; malformed ones are dropped
        """
        response = await fetch_bytes(document_url, timeout=self.fetch_timeout)
        file_name = urlparse(document_url).path.rsplit("/", 1)[-1] or "document"
        content_type = (response.headers.get("content-type") or "").split(";")[0].strip() or None
        text = self.parser.parse(response.content, file_name, content_type)

        data = await self.llm.complete_json(
            [
                {"role": "system", "content": DOCUMENT_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": DOCUMENT_PROMPT.format(file_name=file_name, content=text[:DOCUMENT_CONTENT_LIMIT]),
                },
            ],
            model=self.llm.fast_model,
            json_mode=True,
        )
        raw = data.get("activities", []) if isinstance(data, dict) else []

        activities: List[Activity] = []
        for item in raw:
            try:
                activities.append(parse_activity(item))
            except ValidationError as e:
                logger.warning(f"[Activities] dropping generated activity: {e.error_count()} errors")
        logger.info(f"[Activities] drafted {len(activities)} activities from {file_name}")
        return activities
