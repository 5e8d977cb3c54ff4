"""Prompt templates for the map and reduce phases."""

from __future__ import annotations

from collections.abc import Sequence

CHUNK_SUMMARY_TEMPLATE = """\
You are summarizing a section of a YouTube video transcript. Create a comprehensive and detailed summary that captures all important information from this section of the transcript.

Focus on:
- The main topics and themes in detail
- Key facts, information, and concepts presented
- Important points, arguments, examples, and explanations
- Retain all quantitative information (statistics, dates, figures)
- Preserve technical terms, proper nouns, and specialized vocabulary
- Maintain the logical flow and structure of the original content
- Include important transitions and relationships between ideas

Do not:
- Include your own opinions or evaluations
- Mention that this is a summary or a transcript
- Refer to "the speaker" or "the video"; state the information directly
- Omit significant details even if they seem minor

Format your response as detailed paragraphs. Use bullet points only for lists that appear in the original content.

TRANSCRIPT SECTION:
{chunk}

DETAILED SECTION SUMMARY:"""

REDUCE_TEMPLATE = """\
You are creating a high-quality, comprehensive summary of a YouTube video from detailed summaries of different sections.

The input contains {count} summary sections that represent different parts of the video in sequential order. Each section contains important details that should be preserved.

Combine these section summaries into a single, well-organized document that captures all significant information in a cohesive, readable format.

Guidelines:
- Begin with an overview of the main topics and key takeaways
- Organize information logically by topic while respecting the original flow
- Preserve chronological or sequential relationships between concepts
- Eliminate redundancies while preserving important details and nuance
- Structure with clear sections, headings, and subheadings
- Format with Markdown: ## for main headings, ### for subheadings, bullet points for related items, **bold** for key terms
- Do not mention that this is based on multiple summaries or sections
- Do not refer to "the video" or "the speaker"; present information directly
- Include all significant points, technical terms, proper nouns, and quantitative data

SECTION SUMMARIES:

{sections}

COMPREHENSIVE SUMMARY:"""


def chunk_prompt(chunk: str) -> str:
    return CHUNK_SUMMARY_TEMPLATE.format(chunk=chunk)


def position_indicator(index: int, count: int) -> str:
    """Describe where section *index* of *count* sits in the video."""
    if index == 0:
        return "Beginning"
    if index == count - 1:
        return "End"
    return f"{round(index / (count - 1) * 100)}% through"


def reduce_prompt(summaries: Sequence[str]) -> str:
    """Build the reduce prompt with positional tags on each section."""
    sections = "\n".join(
        f"SECTION {i + 1} [{position_indicator(i, len(summaries))}]:\n{summary}\n"
        for i, summary in enumerate(summaries)
    )
    return REDUCE_TEMPLATE.format(count=len(summaries), sections=sections)
