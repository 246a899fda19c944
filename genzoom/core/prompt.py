from __future__ import annotations

from typing import Dict


DEFAULT_SYSTEM_PROMPT = "You are a helpful AI assistant."

MODE_SYSTEM_PROMPTS: Dict[str, str] = {
    "decide_response": (
        "You are an analysis assistant. Today's ACTUAL date is {today} and the CURRENT year "
        "is {year}. Your task is to analyze queries and determine the most appropriate "
        "response type. Be especially careful to:\n"
        "1. Identify hybrid requests that ask a question AND request visualization\n"
        "2. Route queries about current events, current officeholders, or anything that "
        "might change over time to the exa_response type\n"
        "3. Classify historical facts as text_response\n"
        "4. Recognize when a query contains both an information request and an image "
        "request, even if they're in separate sentences\n"
        "5. Classify requests that ask to \"show\" something visual as image_request or hybrid_response"
    ),
    "text_response": (
        "You are a chatbot that uses the conversation context to answer the following query "
        "in detail. If the query is about a specific event, provide the most accurate "
        "information available."
    ),
}

IMPROVE_PROMPTS: Dict[str, str] = {
    "image": (
        "Enhance the given text into a highly detailed, vivid, and structured image "
        "generation prompt that emphasizes near-realism. Do not return any unrelated text."
    ),
    "search": (
        "Rewrite the following search query so that it clearly asks for the most up-to-date "
        "and current information. Do not add any extra commentary; output only the refined query."
    ),
}

CLASSIFY_TEMPLATE = """IMPORTANT: Today's ACTUAL date is {today} and the CURRENT year is {year}.

Conversation context: "{conversation}"
Current query: "{query}"

First, extract all relevant subjects or details from the above information. Pay special attention to:
- Names of people, places, or things
- Time periods or dates
- Specific questions or requests
- Any context from previous messages that helps understand the current query

Then, determine the most appropriate response type based on the query:
- If the query is asking for an image or visualization, choose "image_request"
- If the query is asking for information AND an image, choose "hybrid_response"
- If the query is about current events, recent developments, or time-sensitive information, choose "exa_response"
- If the query is about historical facts, past events, or information that doesn't change over time, choose "text_response"
- Otherwise, choose "text_response"

FORMAT YOUR RESPONSE EXACTLY LIKE THIS:
Extracted context: <the extracted subjects or details>
Response type: <text_response OR image_request OR exa_response OR hybrid_response>"""

ANSWER_TEMPLATE = """Conversation history: "{conversation}"
Current query from {user_name}: "{query}"

Please provide a helpful, informative response to the current query, taking into account the conversation history."""

VERIFY_SYSTEM_PROMPT = (
    "You are an evaluation assistant. Today's ACTUAL date is {today} in UTC timezone. "
    "Your task is to verify if responses are relevant and accurate as of that date. "
    "Do not reject information only because it is newer than your training data."
)

VERIFY_TEMPLATE = """Query: "{query}"
Response: "{response}"

IMPORTANT: Today's ACTUAL date is {today} in UTC timezone.

Is this response relevant to the query? Consider ONLY:
1. Does it directly address the main subject of the query?
2. Does it provide specific information related to the query?
3. Is the information accurate as of {today}?
{currency_clause}
Answer with VALID if the response is relevant and accurate, or INVALID followed by a brief explanation of any issues."""

CURRENCY_CLAUSE = (
    "4. The query is time-sensitive: does the response reflect the current state of "
    "affairs as of {today}, without outdated information?\n"
)

REFINE_SYSTEM_PROMPT = (
    "You are a query refinement specialist. Today's ACTUAL date is {today} and the CURRENT "
    "year is {year}. Your task is to rewrite queries to get the most accurate and relevant "
    "information as of the current date."
)

REFINE_TEMPLATE = """Original query: "{query}"
Feedback on previous response: "{feedback}"

IMPORTANT: Today's ACTUAL date is {today} and the CURRENT year is {year}.

Please rewrite this query to be more specific, clear, and likely to get an accurate response.
Make sure to:
1. Specify that you want information as of {today}
2. Clarify any ambiguous terms
3. Add specific details that would help get a better response

DO NOT add any disclaimers about knowledge cutoff dates or future events.
{today} is the CURRENT date, not a future date.

Improved query:"""

RESOLVE_SYSTEM_PROMPT = (
    "You are a query enhancement specialist. Today's ACTUAL date is {today} in UTC timezone. "
    "Your task is to rewrite queries to be self-contained and explicit, replacing all pronouns "
    "and references with their specific subjects. The search backend can only provide "
    "information, not generate or return images."
)

RESOLVE_TEMPLATE = """Original query: "{query}"
Recent conversation context: "{conversation}"

IMPORTANT: Today's ACTUAL date is {today} in UTC timezone.

The original query contains references (like "they", "them", "these", etc.) that require context from the conversation.
Please rewrite the query to be self-contained and explicit, replacing all pronouns and references with their specific subjects.
Rewrite the query to ask only for information, not for images or visualizations.

Rewritten query:"""

HYBRID_IMAGE_SYSTEM_PROMPT = (
    "You are an expert at creating detailed image generation prompts. Your task is to take "
    "information and create a vivid, detailed prompt that will result in an appealing and "
    "accurate image."
)

HYBRID_IMAGE_TEMPLATE = """Information from search: "{information}"
Original query: "{query}"
Extracted context: "{extracted_context}"

Based on the above information, create a detailed image prompt that would generate a visually appealing and accurate image related to the query.
The prompt should:
1. Include specific details from the information provided
2. Be descriptive and visually oriented
3. Focus on the main subject of the query
4. Include relevant context, setting, and visual elements
5. Be formatted as a cohesive paragraph describing the scene"""
