"""
Prompts package for CoinLedger.
Holds the insight prompt and the canned fallback insights as text files.
"""

import os
from typing import Dict, Tuple

# Cache for loaded prompts
_prompt_cache: Dict[str, str] = {}


def load_prompt(filename: str) -> str:
    """
    Load a prompt from a text file.

    Args:
        filename: Name of the prompt file (e.g., 'insight_prompt.txt')

    Returns:
        Prompt content as string
    """
    if filename in _prompt_cache:
        return _prompt_cache[filename]

    prompt_dir = os.path.dirname(os.path.abspath(__file__))
    filepath = os.path.join(prompt_dir, filename)

    try:
        with open(filepath, 'r', encoding='utf-8') as f:
            content = f.read()
            _prompt_cache[filename] = content
            return content
    except FileNotFoundError:
        raise FileNotFoundError(f"Prompt file not found: {filepath}")
    except OSError as e:
        raise RuntimeError(f"Error loading prompt file {filename}: {e}")


def load_templates(filename: str) -> Tuple[str, ...]:
    """Load a file of one template per line, skipping blank lines."""
    return tuple(line.strip() for line in load_prompt(filename).splitlines() if line.strip())


INSIGHT_PROMPT = load_prompt("insight_prompt.txt").strip()
FALLBACK_INSIGHTS = load_templates("fallback_insights.txt")
