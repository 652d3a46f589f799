"""Prompt templates for the generative provider."""

DOCS_SYSTEM_PROMPT = """You are a technical documentation specialist maintaining a software help center.

## Impact Assessment Rules
1. **File format or data compatibility changes** -> CRITICAL (affects every user)
2. **Breaking changes to configuration or rule formats** -> CRITICAL (existing setups break)
3. **Deprecations** -> HIGH (users must update workflows)
4. **New features** -> HIGH (users should know about them)
5. **UI/UX changes** -> MEDIUM (affects user workflow)
6. **Performance improvements** -> MEDIUM
7. **Bug fixes** -> LOW to MEDIUM (depends on severity of the bug)

## Affected Roles
- End Users, Administrators, Power Users, IT/DevOps

## Guidelines
- Be conservative with severity scores - when in doubt, rate higher
- Consider backwards compatibility impact
- Flag security-related changes immediately
- Maintain a professional, clear tone for documentation"""

IMPACT_USER = """Analyze the impact of these release notes against the current help article.

RELEASE NOTES:
{notes}

CURRENT ARTICLE:
{article}

Respond ONLY with valid JSON, no other text. Use this structure exactly:
{{
  "score": <1-10>,
  "severity": "<CRITICAL|HIGH|MEDIUM|LOW>",
  "category": "<string>",
  "affectedRoles": ["<role>", "<role>"],
  "summary": "<string>",
  "actionRequired": "<string>",
  "riskAssessment": "<string>"
}}"""

UPDATE_USER = """Generate an updated version of this help article based on the release notes.

RELEASE NOTES:
{notes}

CURRENT ARTICLE:
{article}

Instructions:
- Preserve the original structure and tone
- Add new information from release notes
- Update existing sections if relevant
- Mark major changes with [NEW] or [UPDATED]
- Return ONLY the updated article content, no explanations."""

TRANSLATE_USER = """Translate this technical documentation to {language}.

RULES:
- Preserve ALL markdown formatting and structure
- Keep technical terms and product names in English
- Keep code blocks, tables, lists and hyperlinks unchanged
- Keep the professional and technical tone

CONTENT TO TRANSLATE:
{text}

Return ONLY the translated text, preserving all formatting exactly."""

EXTRACT_USER = """Extract and categorize the following release notes into features, bug fixes, deprecations, and breaking changes.

RELEASE NOTES:
{notes}

Respond ONLY with valid JSON, no markdown code blocks. Use this structure exactly:
{{
  "features": ["feature 1", "feature 2"],
  "bugFixes": ["bug 1", "bug 2"],
  "deprecations": ["deprecated 1"],
  "breakingChanges": ["breaking change 1"]
}}"""

ARTICLE_USER = """Write a comprehensive help article about: "{topic}"

Write the ARTICLE CONTENT ONLY in markdown. No preamble, no questions.

# {topic}

## Overview
2-3 sentences explaining what this is and why it matters.

## Key Concepts
Define 2-3 important terms (use subheadings for each).

## How To Use
Numbered step-by-step instructions with menu paths, buttons and UI elements.

## Use Cases & Examples
2-3 practical scenarios with steps and benefit.

## Best Practices
Three concise tips.

## Common Issues & Solutions
Issue: solution pairs.

## Related Topics
Brief mention of related features.
{context_block}"""

ARTICLE_CONTEXT_BLOCK = """
RELEASE NOTES CONTEXT:
{context}

If relevant, reference this context in your article."""

SUGGEST_GAPS_USER = """You are reviewing release notes to find features that need their own help article.

RELEASE NOTES:
{notes}

EXISTING HELP ARTICLE TITLES:
{existing}

Identify the key FEATURES, IMPROVEMENTS and NEW CAPABILITIES that should have dedicated documentation.

Return ONLY a JSON array with 3-6 items, no markdown and no explanation:
["Feature Name 1", "Feature Name 2", "Feature Name 3"]

Requirements:
- Each item names a specific feature or improvement, not a generic word
- Format: "Feature Name" or "Feature Type: Feature Name"
- Examples: "Advanced Filtering", "Scheduled PDF Export", "SSO: Okta Support"
- Avoid words like "content", "notes", "solution", "improvement"
- Only include items that no existing title already covers"""
