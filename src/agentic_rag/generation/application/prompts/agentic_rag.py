"""
Agentic RAG Prompts
===================

Prompt templates for planning, per-sub-query search and synthesis.
Templates are filled with str.format; literal braces are doubled.
"""

PLANNING_PROMPT = """You are an Agentic RAG planner. Your task is to decompose a developer's intent into optimal sub-queries for code search.

USER INTENT:
"{intent}"

SCOPE:
{scope}

PLANNING STRATEGY:

1. DECOMPOSE INTENT:
   - What are the key entities/concepts involved?
   - What code patterns or APIs are likely needed?
   - What dependencies or related modules should be searched?

2. GENERATE SUB-QUERIES:
   - Create between 1 and {max_sub_queries} specific sub-queries
   - Each sub-query should target a different aspect of the intent
   - Types: code_search, documentation, api_reference, pattern_search, dependency_graph

3. CHOOSE SYNTHESIS STRATEGY:
   - concatenate: simple combination for independent results
   - summarize: extract key information from large results
   - graph_based: build a dependency graph for related code
   - hierarchical: organize by abstraction level

EXAMPLE:

Intent: "Find all API endpoints that modify user data"
Sub-queries:
1. code_search: "API routes with user update operations"
2. pattern_search: "database write operations on user table"
3. dependency_graph: "modules that import user model"
Synthesis: graph_based

OUTPUT FORMAT (JSON object):
{{
  "sub_queries": [
    {{
      "query_id": "query-1",
      "query_text": "specific search query",
      "query_type": "code_search"
    }}
  ],
  "synthesis_strategy": "concatenate"
}}

Generate the RAG plan now."""


SEARCH_PROMPT = """You are a code search engine. Find the code in the indexed files that best answers this query.

QUERY: "{query_text}"
TYPE: {query_type}
FOCUS: {focus}

{corpus}

Return up to {max_results} results, most relevant first. Only cite files listed above.
Relevance is a number between 0.0 and 1.0.

OUTPUT FORMAT (JSON array):
[
  {{
    "file_path": "src/path/to/file.ts",
    "content": "the relevant snippet (10-30 lines)",
    "relevance": 0.95,
    "dependencies": ["dep1"],
    "exports": ["export1"]
  }}
]"""


OPEN_SEARCH_PROMPT = """You are a code search engine. No files have been indexed, so answer from your knowledge of typical codebases.

QUERY: "{query_text}"
TYPE: {query_type}
FOCUS: {focus}
SCOPE: {scope}

Generate up to {max_results} relevant code examples that would exist in a real codebase.
Relevance is a number between 0.0 and 1.0.

OUTPUT FORMAT (JSON array):
[
  {{
    "file_path": "src/path/to/file.ts",
    "content": "// code snippet (10-30 lines)",
    "relevance": 0.95,
    "dependencies": ["dep1"],
    "exports": ["export1"]
  }}
]"""


SEARCH_FOCUS = {
    "code_search": "implementation code that performs what the query describes",
    "pattern_search": "recurring structures and idioms matching the query, across as many files as apply",
    "api_reference": "public signatures, exported symbols and their usage",
    "documentation": (
        "explanatory material: docstrings, comments, READMEs. Summarize each hit's content "
        "into the key facts a developer needs instead of copying it verbatim"
    ),
    "dependency_graph": (
        "how the files depend on each other. Use the listed dependencies and exports, "
        "and keep each result's dependencies field accurate"
    ),
}


SUMMARIZE_PROMPT = """You are a code documentation AI. Summarize the following code search results.

ORIGINAL INTENT: {intent}

CODE SEARCH RESULTS:
{results}

TASK: Create a concise summary that:
1. Explains how to accomplish the original intent
2. References specific code patterns found
3. Highlights key APIs and dependencies
4. Provides a step-by-step approach

OUTPUT: Markdown-formatted summary (max 500 words)"""


GRAPH_PROMPT = """You are a code architecture AI. Analyze this dependency graph and explain the architecture.

ORIGINAL INTENT: {intent}

DEPENDENCY GRAPH:
{graph}

CODE CONTEXTS:
{contexts}

TASK: Explain:
1. The overall architecture revealed by the dependencies
2. Key modules and their roles
3. How data/control flows through the system
4. How to accomplish the original intent within this architecture

OUTPUT: Markdown-formatted architectural analysis"""


HIERARCHICAL_PROMPT = """You are a code documentation AI writing hierarchical documentation. Organize the code search results hierarchically.

ORIGINAL INTENT: {intent}

CODE SEARCH RESULTS:
{results}

TASK: Create a hierarchical documentation structure:

# Overview
High-level explanation of the solution

## Core Concepts
Key abstractions and entities

## Implementation Details
Step-by-step breakdown with code examples

### Specific APIs
Detailed API usage

## Best Practices
Security, performance, maintainability considerations

OUTPUT: Complete hierarchical markdown documentation"""
