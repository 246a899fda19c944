from __future__ import annotations

import asyncio

from genzoom.agent import (
    DELIVERY_APOLOGY,
    IMAGE_APOLOGY,
    NO_INFORMATION,
    SEARCH_APOLOGY,
    TEXT_APOLOGY,
)
from genzoom.replies import DeliveryTarget, HybridReply, ImageReply, TextReply

from conftest import (
    FakeImages,
    FakeSearch,
    RecordingDeliverer,
    ScriptedText,
    build_orchestrator,
    classification,
)


TARGET = DeliveryTarget(to_jid="chat@xmpp.zoom.us", account_id="acct")
IMAGE_URL = "https://cdn.test/generated.jpg"
WEATHER = "Paris is sunny with a high of 18 degrees Celsius this afternoon."
EIFFEL = "The Eiffel Tower is a 330 metre wrought-iron lattice tower in Paris."


def run_turn(store, text, query, search=None, images=None, deliverer=None, user_id="u1"):
    search = search or FakeSearch()
    images = images or FakeImages()
    deliverer = deliverer or RecordingDeliverer()
    orchestrator = build_orchestrator(store, text, search, images, deliverer)
    asyncio.run(orchestrator.handle(user_id, query, TARGET))
    return deliverer, search, images


def sent_replies(deliverer):
    return [reply for _, reply in deliverer.sent]


def test_text_response_uses_history_and_name(store):
    store.set_name("u1", "Ada")
    text = ScriptedText(classification=classification("text_response"), answer="Hamlet was written by Shakespeare.")

    deliverer, _, _ = run_turn(store, text, "Who wrote Hamlet?")

    assert sent_replies(deliverer) == [TextReply("Hamlet was written by Shakespeare.")]
    assert text.answered == [("Who wrote Hamlet?", "User: Who wrote Hamlet?", "Ada")]
    assert store.history("u1") == [
        "User: Who wrote Hamlet?",
        "Bot: Hamlet was written by Shakespeare.",
    ]


def test_text_failure_sends_apology(store):
    text = ScriptedText(classification=classification("text_response"), answer=None)
    deliverer, _, _ = run_turn(store, text, "Who wrote Hamlet?")
    assert sent_replies(deliverer) == [TextReply(TEXT_APOLOGY)]


def test_name_registration_skips_classification(store):
    text = ScriptedText()
    deliverer, _, _ = run_turn(store, text, "My name is Ada Lovelace")

    assert store.display_name("u1") == "Ada Lovelace"
    assert sent_replies(deliverer) == [TextReply("Thanks, I'll remember your name as Ada Lovelace.")]
    assert text.classify_calls == []
    assert store.history("u1") == []


def test_image_request_sends_image_with_prompt(store):
    text = ScriptedText(classification=classification("text_response", "a cat"))
    images = FakeImages(results=[None, IMAGE_URL])

    deliverer, _, _ = run_turn(store, text, "draw a cat", images=images)

    assert text.improved == [("a cat", "image")]
    assert images.prompts == ["enhanced a cat"]
    assert sent_replies(deliverer) == [
        ImageReply(image_url=IMAGE_URL, prompt_text="enhanced a cat", subject="a cat")
    ]
    assert store.history("u1")[-1] == 'Bot: [Generated image based on: "a cat"]'


def test_image_prompt_falls_back_to_raw_query(store):
    text = ScriptedText(classification=classification("image_request"))
    images = FakeImages(results=[IMAGE_URL])
    run_turn(store, text, "sketch a lighthouse", images=images)
    assert text.improved == [("sketch a lighthouse", "image")]


def test_image_submission_failure_reports_failure(store):
    text = ScriptedText(classification=classification("image_request", "a cat"))
    deliverer, _, _ = run_turn(store, text, "draw a cat", images=FakeImages(handle=None))
    assert sent_replies(deliverer) == [TextReply(IMAGE_APOLOGY)]


def test_image_polling_timeout_reports_failure(store):
    text = ScriptedText(classification=classification("image_request", "a cat"))
    images = FakeImages(results=[])
    deliverer, _, _ = run_turn(store, text, "draw a cat", images=images)
    assert images.checks == 10
    assert sent_replies(deliverer) == [TextReply(IMAGE_APOLOGY)]


def test_weather_today_routes_to_verified_search(store):
    text = ScriptedText(generated=["VALID"], classification=classification("text_response"))
    search = FakeSearch(answers=[WEATHER])

    deliverer, search, _ = run_turn(store, text, "what's the weather today", search=search)

    assert search.queries == ["what's the weather October 19, 2026"]
    assert sent_replies(deliverer) == [TextReply(WEATHER)]
    assert store.history("u1")[-1] == f"Bot: {WEATHER}"


def test_search_falls_back_to_direct_call(store):
    text = ScriptedText(classification=classification("exa_response"))
    search = FakeSearch(answers=[None, WEATHER])

    deliverer, search, _ = run_turn(store, text, "weather in Paris", search=search)

    assert len(search.queries) == 2
    assert sent_replies(deliverer) == [TextReply(WEATHER)]


def test_search_total_failure_sends_apology(store):
    text = ScriptedText(classification=classification("exa_response"))
    deliverer, _, _ = run_turn(store, text, "weather in Paris", search=FakeSearch())
    assert sent_replies(deliverer) == [TextReply(SEARCH_APOLOGY)]


def test_hybrid_grounds_image_prompt_in_search_result(store):
    query = "Tell me about the Eiffel Tower and then imagine it at night"
    text = ScriptedText(
        generated=["VALID", "The Eiffel Tower glowing at night over the Seine"],
        classification=classification("hybrid_response", "Eiffel Tower at night"),
    )
    search = FakeSearch(answers=[EIFFEL])
    images = FakeImages(results=[IMAGE_URL])

    deliverer, search, images = run_turn(store, text, query, search=search, images=images)

    assert search.queries == ["Tell me about the Eiffel Tower"]
    assert EIFFEL in text.prompts[1]
    assert images.prompts == ["The Eiffel Tower glowing at night over the Seine"]
    assert sent_replies(deliverer) == [
        HybridReply(
            text=EIFFEL,
            image_url=IMAGE_URL,
            prompt_text="The Eiffel Tower glowing at night over the Seine",
        )
    ]
    assert store.history("u1")[-1].startswith(f"Bot: {EIFFEL}")


def test_hybrid_downgrades_to_text_when_image_fails(store):
    text = ScriptedText(
        generated=["VALID", "night scene"],
        classification=classification("hybrid_response"),
    )
    deliverer, _, _ = run_turn(
        store,
        text,
        "Tell me about the Eiffel Tower and then imagine it at night",
        search=FakeSearch(answers=[EIFFEL]),
        images=FakeImages(handle=None),
    )
    assert sent_replies(deliverer) == [TextReply(EIFFEL)]


def test_hybrid_without_information_uses_placeholder(store):
    text = ScriptedText(classification=classification("hybrid_response", "Eiffel Tower"))
    images = FakeImages(results=[IMAGE_URL])

    deliverer, _, images = run_turn(
        store,
        text,
        "Tell me about the Eiffel Tower and then imagine it at night",
        search=FakeSearch(),
        images=images,
    )

    # the prompt-enhancement call failed too, so the extracted context is drawn
    assert images.prompts == ["Eiffel Tower"]
    assert sent_replies(deliverer) == [
        HybridReply(text=NO_INFORMATION, image_url=IMAGE_URL, prompt_text="Eiffel Tower")
    ]


def test_failed_image_delivery_retries_with_text_apology(store):
    text = ScriptedText(classification=classification("image_request", "a cat"))
    deliverer = RecordingDeliverer(outcomes=[False, True])

    run_turn(store, text, "draw a cat", images=FakeImages(results=[IMAGE_URL]), deliverer=deliverer)

    replies = sent_replies(deliverer)
    assert isinstance(replies[0], ImageReply)
    assert replies[1] == TextReply(DELIVERY_APOLOGY)
    assert store.history("u1")[-1] == f"Bot: {DELIVERY_APOLOGY}"


def test_failed_text_delivery_is_not_retried_or_recorded(store):
    text = ScriptedText(classification=classification("text_response"))
    deliverer = RecordingDeliverer(outcomes=[False])

    run_turn(store, text, "Who wrote Hamlet?", deliverer=deliverer)

    assert len(deliverer.sent) == 1
    assert store.history("u1") == ["User: Who wrote Hamlet?"]


def test_unexpected_errors_never_escape_handle(store):
    class ExplodingText(ScriptedText):
        async def classify(self, query, conversation, today):
            raise RuntimeError("classifier exploded")

    deliverer, _, _ = run_turn(store, ExplodingText(), "Who wrote Hamlet?")
    assert deliverer.sent == []
