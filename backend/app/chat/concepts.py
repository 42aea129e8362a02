"""Concept-explanation detection for chat queries."""

import re
from dataclasses import dataclass

from backend.app.models.chat import KnowledgeLevel

# AI topics the assistant gives structured explanations for
AI_TOPICS = (
    "deep learning",
    "machine learning",
    "neural networks",
    "natural language processing",
    "computer vision",
    "reinforcement learning",
    "generative ai",
    "transformer models",
    "llm",
    "large language models",
    "model context protocol",
    "mcp",
    "attention mechanism",
    "fine-tuning",
    "prompt engineering",
    "rag",
    "retrieval augmented generation",
    "vector database",
    "embedding",
    "tokens",
    "tokenization",
    "cuda",
    "gpu acceleration",
    "quantization",
    "onnx",
    "agentic ai",
    "multimodal",
    "diffusion models",
    "gan",
    "stable diffusion",
    "openai",
    "anthropic",
    "claude",
    "gpt",
    "cursor",
    "langchain",
    "semantic kernel",
)

_EXPLANATION = re.compile(
    r"what is|explain|how does|define|meaning of|concept of|tell me about|what are|describe",
    re.IGNORECASE,
)
_ADVANCED = re.compile(
    r"in depth|advanced|complex|technical details|implementation|architecture"
    r"|under the hood|internals|mathematics behind",
    re.IGNORECASE,
)
_INTERMEDIATE = re.compile(
    r"how does it work|mechanism|process|explain the concept|principle|fundamentals"
    r"|overview|compared to",
    re.IGNORECASE,
)
_CODE = re.compile(
    r"code example|example code|sample code|implementation|how to implement|how to code"
    r"|code sample|programming|with code|show code|code snippet|how would you code",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class ConceptQuery:
    """A chat message recognized as a request to explain an AI topic."""

    topic: str
    knowledge_level: KnowledgeLevel
    include_code: bool


def _mentions(text: str, topic: str) -> bool:
    # Short topics ("rag", "gan", "mcp") only count as whole words
    if len(topic) <= 4:
        return re.search(rf"\b{re.escape(topic)}\b", text) is not None
    return topic in text


def find_topic(query: str) -> str | None:
    """First known AI topic mentioned in the query."""
    lower = query.lower()
    for topic in AI_TOPICS:
        if _mentions(lower, topic):
            return topic
    return None


def detect_knowledge_level(query: str) -> KnowledgeLevel:
    if _ADVANCED.search(query):
        return "advanced"
    if _INTERMEDIATE.search(query):
        return "intermediate"
    return "beginner"


def is_code_example_requested(query: str) -> bool:
    return _CODE.search(query) is not None


def detect_concept_query(query: str) -> ConceptQuery | None:
    """Recognize "what is / explain ..." questions about a known AI topic."""
    if not _EXPLANATION.search(query):
        return None
    topic = find_topic(query)
    if topic is None:
        return None
    return ConceptQuery(
        topic=topic,
        knowledge_level=detect_knowledge_level(query),
        include_code=is_code_example_requested(query),
    )


def build_concept_instruction(concept: ConceptQuery) -> str:
    """System instruction asking for a JSON-structured explanation."""
    code = " Include relevant code examples." if concept.include_code else ""
    return (
        f"The user is asking about the concept of {concept.topic}. Provide a structured "
        f"explanation at the {concept.knowledge_level} level.{code}\n\n"
        "Format your response as a JSON object with the following structure:\n"
        "```json\n"
        "{\n"
        '  "concept": "name of concept",\n'
        f'  "knowledge_level": "{concept.knowledge_level}",\n'
        '  "summary": "brief summary",\n'
        '  "details": "detailed explanation using markdown",\n'
        '  "code_example": "example code if relevant",\n'
        '  "related_concepts": ["related1", "related2"]\n'
        "}\n"
        "```\n\n"
        "Make sure your entire response is valid JSON that can be parsed. "
        "Do not include any text outside the JSON structure."
    )
