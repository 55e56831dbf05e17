"""LLM prompts for reference extraction and the staged validation pipeline.

Edit these prompts to tune the agents without touching code.
Reference extraction, query enhancement and explanations run on a local
Ollama model; the web search prompt is sent to Perplexity.
"""

# --- Reference extraction ---

EXTRACTION_SYSTEM_PROMPT = """\
You are a reference extraction assistant. Your job is to parse academic \
reference lists into structured JSON. Be precise with author names, titles, \
years, and DOIs. If a field is not present in the reference, leave it empty."""

EXTRACTION_PROMPT_TEMPLATE = """\
Extract every reference from the bibliography text below. Do not skip any: \
each numbered or bulleted entry becomes one element of "references". \
For each reference give: raw_text (the exact text of the entry as written, \
including its citation number), title, authors (as a list), year, venue \
(journal or conference), doi (or null) and urls (a list).

Example input:
[4] Smith, J., & Doe, A. (2020). Machine learning in healthcare. Nature Medicine, 26(3), 309-316. https://doi.org/10.1038/s41591-020-0803-x

Example output for that reference:
{{"raw_text": "[4] Smith, J., & Doe, A. (2020). Machine learning in healthcare. Nature Medicine, 26(3), 309-316. https://doi.org/10.1038/s41591-020-0803-x", \
"title": "Machine learning in healthcare", "authors": ["Smith, J.", "Doe, A."], \
"year": "2020", "venue": "Nature Medicine", "doi": "10.1038/s41591-020-0803-x", \
"urls": ["https://doi.org/10.1038/s41591-020-0803-x"]}}

Now extract all references from this text:

---
{reference_text}
---"""

# --- Query enhancement ---

QUERY_ENHANCEMENT_SYSTEM_PROMPT = """\
You are a query optimization assistant. Generate optimized search queries \
for academic databases. Answer with JSON only."""

QUERY_ENHANCEMENT_PROMPT_TEMPLATE = """\
Given this academic reference, generate 3-5 optimized search query variations \
that might help find it in academic databases. Handle:
- Abbreviations (e.g., "NIPS" -> "Neural Information Processing Systems")
- Author name variations (full name, last name only, initials)
- Title variations (with/without punctuation, normalized, OCR errors fixed)
- Combined queries (title + author, title + year)

Reference:
Title: {title}
Authors: {authors}
Year: {year}
Venue: {venue}

Return an object with a "variants" list. Each variant has: title (string), \
authors (list of strings), year (string, optional) and description (string).
Example: {{"variants": [{{"title": "Neural GPUs", "authors": ["Kaiser"], \
"year": "2016", "description": "Original query"}}, {{"title": "NeuralGPUs", \
"authors": ["Kaiser, L"], "description": "No spaces variant"}}]}}"""

# --- Web search ---

WEB_SEARCH_SYSTEM_PROMPT = """\
You are an academic reference finder. Search the web for academic papers and \
return structured reference data in JSON format. Focus on scholarly sources \
like arXiv, Google Scholar, academic journals, and conference proceedings."""

WEB_SEARCH_QUERY_TEMPLATE = """\
Find this academic paper: {description}. Return structured reference data \
including title, authors, year, venue, DOI, and URL in JSON format."""

WEB_EXTRACTION_PROMPT_TEMPLATE = """\
Extract structured reference data from this text about an academic paper: \
title, authors (list), year, venue, doi (or null), url (or null).

Text: {text}"""

# --- Not-found explanation ---

EXPLANATION_SYSTEM_PROMPT = """\
You are an academic reference validation expert. Provide clear, concise explanations."""

EXPLANATION_PROMPT_TEMPLATE = """\
A reference could not be found after trying multiple strategies. \
Generate a helpful explanation.

{context}

Provide:
1. Summary of what was tried (queries, APIs, web search)
2. Potential reasons why the reference wasn't found:
   - Typo in extracted reference
   - Reference is very new/obscure
   - Reference is from non-indexed source
   - Abbreviation/formatting issues
   - Reference might not exist
3. Suggestions for manual verification

Keep the explanation concise but informative. Format as a clear paragraph."""
