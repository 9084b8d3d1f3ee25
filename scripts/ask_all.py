import asyncio
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from llm_compare.presenter import format_response_time
from llm_compare.runner import ask_all
from llm_compare.types import ResultStatus

async def main():
    user_prompt = " ".join(sys.argv[1:]).strip()
    if not user_prompt:
        user_prompt = input("Prompt: ").strip()

    results = await ask_all(user_prompt)
    for r in results:
        latency = format_response_time(r.metadata.latency_ms if r.metadata else None)
        print("\n" + "=" * 80)
        print(f"{r.provider_id} | {r.display_name} | {latency} | error={r.status is ResultStatus.ERROR}")
        if r.error_message:
            print("ERROR:", r.error_message)
        else:
            print(r.text)

if __name__ == "__main__":
    asyncio.run(main())
