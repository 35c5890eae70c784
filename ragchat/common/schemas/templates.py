"""
Prompt Templates

Versioned prompt assets for every language-model call in the pipeline.
Templates are rendered with named str.format parameters only; bump
PROMPT_VERSION whenever a template's text changes.
"""

from typing import TYPE_CHECKING, List

if TYPE_CHECKING:
    from .chat import SupportingContentRecord


PROMPT_VERSION = "rrr-2023.10"

NO_SOURCE_SENTINEL = "no source available."


QUERY_REFINEMENT_SYSTEM = """You are a helpful AI assistant, generate search query for followup question.
Make your respond simple and precise. Return the query only, do not return any other text.
e.g.
Northwind Health Plus AND standard plan.
standard plan AND dental AND employee benefit.
"""


ANSWER_SYSTEM = (
    "You are a system assistant who helps the company employees with their healthcare "
    "plan questions, and questions about the employee handbook. Be brief in your answers"
)


ANSWER_USER_TEMPLATE = """ ## Source ##
{sources}
## End ##

You answer needs to be a json object with the following format.
{{
    "answer": // the answer to the question, add a source reference to the end of each sentence. e.g. Apple is a fruit [reference1.pdf][reference2.pdf]. If no source available, put the answer as I don't know.
    "thoughts": // brief thoughts on how you came up with the answer, e.g. what sources you used, what you thought about, etc.
}}"""


FOLLOWUP_SYSTEM = "You are a helpful AI assistant"


FOLLOWUP_USER_TEMPLATE = """Generate three follow-up question based on the answer you just generated.
# Answer
{answer}

# Format of the response
Return the follow-up question as a json string list.
e.g.
[
    "What is the deductible?",
    "What is the co-pay?",
    "What is the out-of-pocket maximum?"
]"""


def render_sources(records: List["SupportingContentRecord"]) -> str:
    """Grounding text: one "<source>:<content>" line per record, CR separated"""
    if not records:
        return NO_SOURCE_SENTINEL
    return "\r".join(f"{r.title}:{r.content}" for r in records)


def render_answer_prompt(records: List["SupportingContentRecord"]) -> str:
    return ANSWER_USER_TEMPLATE.format(sources=render_sources(records))


def render_followup_prompt(answer: str) -> str:
    return FOLLOWUP_USER_TEMPLATE.format(answer=answer)
