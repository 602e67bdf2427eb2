"""
Mock session generator
Seeds the configured records store with demo inspection sessions so the
report pages have something to show. Videos are not generated; local
sessions point at <sessionId>.webm which may not exist.
"""
import os
import random
import sys

# Add the project root to the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from modules.entries import Item, Remark, SessionEntry

ITEM_NAMES = ["Widget A", "Widget B", "Housing", "Connector", "Cable harness", "Panel"]
DEFECTS = ["scratch on side", "dent near corner", "loose screw", "discoloration", "bent pin", "ok"]


def build_mock_session(index: int, start_ms: int, rng: random.Random) -> tuple[str, dict]:
    session_id = f"session-{start_ms}"
    items = []
    offset = 0
    for _ in range(rng.randint(1, 4)):
        offset += rng.randint(2_000, 20_000)
        item = Item(name=rng.choice(ITEM_NAMES), added_at=offset)
        ts = offset
        for _ in range(rng.randint(0, 3)):
            ts += rng.randint(1_000, 15_000)
            item.remarks.append(Remark(text=rng.choice(DEFECTS), ts=ts))
        offset = ts
        items.append(item)

    entry = SessionEntry(session_id=session_id, items=items, video_source="local", video_ext="webm")
    return f"MOCK-{index + 1:03d}", entry.to_dict()


def build_mock_sessions(count: int = 5, seed: int = 0,
                        start_ms: int = 1_700_000_000_000) -> dict:
    rng = random.Random(seed)
    sessions = {}
    for i in range(count):
        key, entry = build_mock_session(i, start_ms + i * 3_600_000, rng)
        sessions[key] = entry
    return sessions


def seed(app, count: int = 5) -> dict:
    sessions = build_mock_sessions(count)
    with app.app_context():
        return app.extensions["svi"].records.upsert_many(sessions)


def main():
    from app import create_app

    count = int(sys.argv[1]) if len(sys.argv) > 1 else 5
    app = create_app()
    print(f"Generating {count} mock sessions ({app.config['RECORDS_BACKEND']} backend)...")
    records = seed(app, count)
    for key in records:
        if key.startswith("MOCK-"):
            print(f"  ✓ {key}")
    print(f"\nDone. {len(records)} sessions in the store.")


if __name__ == "__main__":
    main()
