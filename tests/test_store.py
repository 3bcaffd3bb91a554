from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

from db import TelegramProfile, day_window


def test_day_window_bounds():
    start, end = day_window(datetime(2024, 3, 15, 14, 30, 12, 345678))

    assert start == datetime(2024, 3, 15, 0, 0, 0, 0)
    assert end == datetime(2024, 3, 15, 23, 59, 59, 999000)


def test_get_or_create_never_overwrites(user_store):
    first = TelegramProfile(tg_id="42", first_name="Ada", last_name="Lovelace", is_bot=False, username="ada")
    second = TelegramProfile(tg_id="42", first_name="Grace", last_name="Hopper", is_bot=True, username="grace")

    record, created = user_store.get_or_create(first)
    again, created_again = user_store.get_or_create(second)

    assert created is True
    assert created_again is False
    assert again["id"] == record["id"]
    assert again["first_name"] == "Ada"
    assert again["last_name"] == "Lovelace"
    assert again["is_bot"] is False
    assert again["username"] == "ada"


def test_users_without_handle_do_not_collide(user_store):
    user_store.get_or_create(TelegramProfile(tg_id="1", first_name="Sam"))
    user_store.get_or_create(TelegramProfile(tg_id="2", first_name="Sam"))

    assert user_store.get("1")["username"] is None
    assert user_store.get("2")["username"] is None


def test_add_token_usage_accumulates(user_store):
    user_store.get_or_create(TelegramProfile(tg_id="42", first_name="Ada"))

    assert user_store.add_token_usage("42", prompt_tokens=10, completion_tokens=5)
    assert user_store.add_token_usage("42", prompt_tokens=3, completion_tokens=2)

    record = user_store.get("42")
    assert record["prompt_tokens"] == 13
    assert record["completion_tokens"] == 7


def test_add_token_usage_for_unknown_user(user_store):
    assert user_store.add_token_usage("404", prompt_tokens=1, completion_tokens=1) is False


def test_list_for_day_only_returns_own_events_of_that_day(event_store, clock):
    clock.now = datetime(2024, 3, 14, 23, 59, 59, 999999)
    event_store.add("42", "late yesterday")
    clock.now = datetime(2024, 3, 15, 0, 0, 0)
    event_store.add("42", "midnight")
    clock.now = datetime(2024, 3, 15, 9, 0, 0)
    event_store.add("42", "standup")
    event_store.add("7", "someone else")
    clock.now = datetime(2024, 3, 15, 23, 59, 59, 999000)
    event_store.add("42", "last call")
    clock.now = datetime(2024, 3, 16, 0, 0, 0)
    event_store.add("42", "tomorrow")

    day_events = event_store.list_for_day("42", datetime(2024, 3, 15, 12, 0))

    assert [event["text"] for event in day_events] == ["midnight", "standup", "last call"]
    assert {event["tg_id"] for event in day_events} == {"42"}


def test_concurrent_inserts_are_distinct(event_store):
    texts = [f"event {i}" for i in range(8)]

    with ThreadPoolExecutor(max_workers=4) as pool:
        ids = list(pool.map(lambda text: event_store.add("42", text), texts))

    assert len(set(ids)) == len(texts)
    stored = event_store.list_for_day("42")
    assert sorted(event["text"] for event in stored) == sorted(texts)


def test_sub_millisecond_event_before_midnight_stays_in_its_day(event_store, clock):
    clock.now = datetime(2024, 3, 15, 23, 59, 59, 999500)
    event_store.add("42", "just before midnight")

    day_events = event_store.list_for_day("42", datetime(2024, 3, 15, 8, 0))

    assert [event["text"] for event in day_events] == ["just before midnight"]
    assert day_events[0]["created_at"] == datetime(2024, 3, 15, 23, 59, 59, 999000)


def test_taken_over_handle_does_not_block_new_user(user_store):
    user_store.get_or_create(TelegramProfile(tg_id="1", first_name="Ada", username="ada"))

    record, created = user_store.get_or_create(
        TelegramProfile(tg_id="2", first_name="Ada", username="ada")
    )

    assert created is True
    assert record["tg_id"] == "2"
    assert record["username"] is None
    assert user_store.get("1")["username"] == "ada"
