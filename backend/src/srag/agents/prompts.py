SYNTHESIS_PROMPT = """You answer questions using the documents retrieved for the user.

Guidelines:
- Base the answer on the retrieved context; do not invent facts.
- Organize the answer clearly, using headings or lists where they help.
- Cite specific details from the context when they support the answer.
- If the context is insufficient, say which information is missing.

RETRIEVED CONTEXT:
{context}

Answer the user's question based solely on the context above."""

NO_CONTEXT_TEXT = "No context available."

CRITIQUE_PROMPT = """CONTENT QUALITY EVALUATION
--------------------------

You are a strict evaluator of answers produced from retrieved documents. Approve
only answers that meet every criterion below.

EVALUATION CRITERIA:

1. CONTENT QUALITY & DEPTH (35%)
   - Comprehensive and informative, going beyond surface facts.
   - Addresses likely follow-up questions.

2. FACTUAL ACCURACY (25%)
   - Fully supported by the retrieved context, with no speculation.
   - Knowledge limitations are acknowledged explicitly.

3. ENGAGEMENT & STYLE (15%)
   - Clear, authoritative voice with concrete examples.

4. STRUCTURE & ORGANIZATION (15%)
   - Logical organization with effective formatting.

5. ENHANCED FEATURES (10%)
   - Adds value such as follow-up questions or identified knowledge gaps.
{strict_instructions}{not_found_instructions}{research_notes_instructions}
ORIGINAL QUERY:
{query}

RETRIEVED CONTEXT:
{context}

RESPONSE TO EVALUATE:
{response}

Reply with a JSON object and nothing else:
{{"score": <0.0-1.0>, "approved": <true|false>, "reasoning": "<brief explanation>", "refinedQuery": "<a better query if not approved, otherwise None needed>"}}"""

STRICT_INSTRUCTIONS = """
STRICT MODE: unless the answer excels in every category, reject it and
suggest a refined query.
"""

NOT_FOUND_INSTRUCTIONS = """
The response claims information is not available in the context. Be skeptical:
- Approve only if the information truly is absent from the context.
- If the information IS in the context, give a very low score.
- For chapter or section queries, check every mention of that chapter first.
"""

RESEARCH_NOTES_INSTRUCTIONS = """
The response includes RESEARCH NOTES requesting more information.
- Judge whether the requested lookups would genuinely improve the answer.
- If they would, put the most useful one in "refinedQuery".
"""

CRITIQUE_USER_MESSAGE = "Evaluate this response"

NOT_FOUND_PHRASES = (
    "not found in context",
    "no information available",
    "could not find",
    "no context found",
    "there is no information",
    "does not mention",
    "is not mentioned",
    "is not discussed",
    "is not provided",
    "is not covered",
    "since the provided context",
    "the context does not",
    "the context provided does not",
)
