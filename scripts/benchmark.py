"""HTTP benchmark: walk the article search cursor from the first page to the last."""
import asyncio
import argparse
import statistics
import time
import httpx

DEFAULT_BASE_URL = "http://localhost:8000"
SEARCH_PATH = "/api/v1/articles/search"


async def walk(client: httpx.AsyncClient, base_url: str, size: int, params: dict) -> dict:
    times = []
    query_counts = []
    seen: set[str] = set()
    duplicates = 0
    cursor: dict = {}

    while True:
        start = time.perf_counter()
        resp = await client.get(f"{base_url}{SEARCH_PATH}", params={**params, "size": size, **cursor})
        times.append((time.perf_counter() - start) * 1000)
        resp.raise_for_status()
        qc = resp.headers.get("X-Query-Count")
        if qc is not None:
            query_counts.append(int(qc))

        page = resp.json()
        for item in page["items"]:
            if item["id"] in seen:
                duplicates += 1
            seen.add(item["id"])
        if not page["has_next"]:
            break
        cursor = {
            "cursor_id": page["next_cursor_id"],
            "cursor_updated_at": page["next_cursor_updated_at"],
        }

    return {
        "pages": len(times),
        "articles": len(seen),
        "duplicates": duplicates,
        "avg_ms": round(statistics.mean(times), 2),
        "p95_ms": round(sorted(times)[int(len(times) * 0.95)], 2),
        "max_ms": round(max(times), 2),
        "queries": round(statistics.mean(query_counts), 1) if query_counts else "N/A",
    }


async def run_benchmark(base_url: str, size: int, board_id: int | None):
    params = {"board_id": board_id} if board_id is not None else {}
    print("=" * 72)
    print(f"Cursor walk benchmark: size={size} params={params or '-'}")
    print(f"Target: {base_url}")
    print("=" * 72)

    async with httpx.AsyncClient() as client:
        try:
            resp = await client.get(f"{base_url}/health")
            resp.raise_for_status()
        except httpx.HTTPError as e:
            print(f"ERROR: Cannot reach {base_url}: {e}")
            return

        result = await walk(client, base_url, size, params)

    for key, value in result.items():
        print(f"  {key:<12} {value}")
    if result["duplicates"]:
        print("WARNING: the walk returned duplicate articles")


def main():
    parser = argparse.ArgumentParser(description="Benchmark the article search cursor")
    parser.add_argument("--size", type=int, default=50, help="Page size")
    parser.add_argument("--board-id", type=int, default=None, help="Restrict the walk to one board")
    parser.add_argument("--base-url", default=DEFAULT_BASE_URL, help="API base URL")
    args = parser.parse_args()
    asyncio.run(run_benchmark(args.base_url, args.size, args.board_id))


if __name__ == "__main__":
    main()
