"""
Example usage of the autocomplete engine with MongoDB.

Samples a collection, then walks through a short editing session: completing a
field name, an operator and a value.
"""

import asyncio
import json
import os

from query_autocomplete import AutoCompleteOrchestrator
from query_autocomplete.config import DEFAULT_CONNECTION, configure_logging, load_config

COLLECTION = os.getenv("MONGO_COLLECTION", "transactions")


def setup_orchestrator():
    """Setup MongoDB orchestrator from the environment."""
    config = load_config()
    configure_logging(config.log_level)
    return AutoCompleteOrchestrator.from_config(config)


async def complete(orchestrator, text: str, cursor: int) -> str:
    """Print the suggestions at cursor and accept the first one."""
    result = await orchestrator.suggest(DEFAULT_CONNECTION, COLLECTION, text, cursor)
    suggestions = result["suggestions"]

    print(f"\n{text[:cursor]}|{text[cursor:]}")
    for suggestion in suggestions:
        print(f"  {suggestion.kind.value:12} {suggestion.text}")

    if not suggestions:
        return text

    first = suggestions[0]
    replaced = orchestrator.replace(text, cursor, first.text, first.kind)
    print(f"  -> {replaced.text[:replaced.cursor]}|{replaced.text[replaced.cursor:]}")
    return replaced.text


async def main():
    orchestrator = setup_orchestrator()

    try:
        schema = await orchestrator.get_schema(DEFAULT_CONNECTION, COLLECTION, wait=True)
        print(f"Sampled {schema.sampled} documents")
        print(json.dumps(schema.to_flags(), indent=2, default=str))

        # Field name
        await complete(orchestrator, "am", 2)
        # Operator
        await complete(orchestrator, "amount: {$g}", 11)
        # Value
        await complete(orchestrator, "currency: ", 10)
    finally:
        orchestrator.close()


if __name__ == "__main__":
    asyncio.run(main())
