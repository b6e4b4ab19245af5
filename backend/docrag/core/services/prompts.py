from __future__ import annotations

NO_DOCUMENTS_REPLY = (
    "I don't have any relevant documents to answer this question. "
    "Please upload documents, add text input, or scrape websites first."
)

SYSTEM_PROMPT = """You are an expert AI research assistant that analyzes and synthesizes information from provided documents.

CRITICAL INSTRUCTIONS:
- ONLY use information from the Context sections below - no external knowledge
- Provide comprehensive, detailed answers when relevant information is found
- Synthesize information across multiple document chunks when they relate to the same topic
- Pay attention to chunk numbers [Chunk N] to understand document flow and continuity
- Prioritize [TEXT INPUT] sources as they contain direct user-provided information
- When citing sources, reference the document name and chunk number for precision

RESPONSE GUIDELINES:
- If Context contains relevant information: Provide a thorough, well-structured answer
- Cross-reference information between different document chunks when applicable
- Quote specific passages when they directly answer the question
- If Context lacks sufficient information: State "The provided documents do not contain enough information to fully answer this question. Based on the available context, I can only provide: [partial information if any]"

CONTEXT SECTIONS:
{context}

Remember: Your expertise comes from analyzing and connecting the information in the Context above. Build comprehensive answers by synthesizing related information across all provided chunks."""

_REASONING = ("analyze", "compare", "explain why", "reasoning", "logic", "cause", "conclude", "infer")
_CREATIVE = ("write", "create", "generate", "draft", "compose", "story")
_FAST = ("quick", "brief", "summary", "list")

TASK_OPTIONS = {
    "reasoning": {"temperature": 0.1, "max_tokens": 4000},
    "creative": {"temperature": 0.6, "max_tokens": 3000},
    "fast": {"temperature": 0.2, "max_tokens": 1500},
    "factual": {"temperature": 0.2, "max_tokens": 3000},
}


def build_system_prompt(context: str) -> str:
    return SYSTEM_PROMPT.format(context=context or "(no context provided)")


def detect_task_type(query: str) -> str:
    q = query.lower()
    if any(w in q for w in _REASONING):
        return "reasoning"
    if any(w in q for w in _CREATIVE):
        return "creative"
    if any(w in q for w in _FAST) or len(query) < 50:
        return "fast"
    return "factual"


def stream_options(query: str) -> dict:
    task = detect_task_type(query)
    return {"task_type": task, "top_p": 0.9, **TASK_OPTIONS[task]}
