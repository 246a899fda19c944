from __future__ import annotations

import logging
from datetime import date
from typing import Callable, Optional, Protocol

from genzoom.core import prompt
from genzoom.core.intents import ClassificationResult, IntentClassifier, ResponseType
from genzoom.core.memory import ContextStore
from genzoom.core.polling import ImagePoller
from genzoom.core.query_split import split_hybrid_query
from genzoom.core.verification import SearchVerifier
from genzoom.dates import process_query, utc_today
from genzoom.replies import (
    DeliveryTarget,
    HybridReply,
    ImageReply,
    ReplyPayload,
    TextReply,
    has_image,
)


logger = logging.getLogger(__name__)

TEXT_APOLOGY = "I'm sorry, but I couldn't generate a response at this time."
IMAGE_APOLOGY = "I'm sorry, but I couldn't generate an image at this time."
SEARCH_APOLOGY = "I'm sorry, but I couldn't retrieve current information at this time."
NO_INFORMATION = "I couldn't find specific information about that."
DELIVERY_APOLOGY = "I couldn't send the generated image due to a technical issue."
UNKNOWN_TYPE_APOLOGY = "I'm sorry, but I couldn't determine the correct response type."

NAME_PREFIX = "my name is "


class TextGenerator(Protocol):
    async def generate(
        self, prompt: str, mode: str = "generic", system_prompt: Optional[str] = None
    ) -> Optional[str]: ...

    async def answer(
        self, query: str, conversation: str, user_name: Optional[str] = None
    ) -> Optional[str]: ...

    async def improve_prompt(self, original: str, kind: str = "image") -> str: ...


class Searcher(Protocol):
    async def search(self, query: str) -> Optional[str]: ...


class ImageSubmitter(Protocol):
    async def submit(self, prompt: str, width: int = 1024, height: int = 768) -> Optional[str]: ...


class Deliverer(Protocol):
    async def deliver(self, target: DeliveryTarget, reply: ReplyPayload) -> bool: ...


class ResponseOrchestrator:
    """Drives one chat turn from raw text to a delivered reply.

    Every failure below this boundary is absorbed into a degraded but valid
    reply; nothing is raised to the caller.
    """

    def __init__(
        self,
        store: ContextStore,
        classifier: IntentClassifier,
        text: TextGenerator,
        search: Searcher,
        verifier: SearchVerifier,
        images: ImageSubmitter,
        poller: ImagePoller,
        deliverer: Deliverer,
        today: Callable[[], date] = utc_today,
    ):
        self.store = store
        self.classifier = classifier
        self.text = text
        self.search = search
        self.verifier = verifier
        self.images = images
        self.poller = poller
        self.deliverer = deliverer
        self._today = today

    async def handle(self, user_id: str, raw_text: str, target: DeliveryTarget) -> None:
        try:
            await self._handle(user_id, raw_text.strip(), target)
        except Exception:
            logger.exception("Error processing chat message for user %s", user_id)

    async def _handle(self, user_id: str, raw_text: str, target: DeliveryTarget) -> None:
        if raw_text.lower().startswith(NAME_PREFIX):
            name = raw_text[len(NAME_PREFIX):].strip()
            self.store.set_name(user_id, name)
            logger.info("User %s set their name as: %s", user_id, name)
            await self.deliverer.deliver(target, TextReply(f"Thanks, I'll remember your name as {name}."))
            return

        self.store.append(user_id, f"User: {raw_text}")
        classification = await self.classifier.classify(raw_text, user_id)
        logger.info(
            "Analysis results - context: %r, response type: %s",
            classification.extracted_context,
            classification.response_type.value,
        )

        reply = await self.respond(user_id, raw_text, classification)
        delivered = await self.send(target, reply)
        if delivered is not None:
            self.store.append(user_id, f"Bot: {delivered.history_text}")

    async def respond(
        self,
        user_id: str,
        raw_text: str,
        classification: ClassificationResult,
    ) -> ReplyPayload:
        response_type = classification.response_type
        if response_type is ResponseType.TEXT:
            return await self.text_reply(user_id, raw_text)
        if response_type is ResponseType.IMAGE:
            return await self.image_reply(raw_text, classification.extracted_context)
        if response_type is ResponseType.SEARCH:
            return await self.search_reply(user_id, raw_text)
        if response_type is ResponseType.HYBRID:
            return await self.hybrid_reply(user_id, raw_text, classification.extracted_context)
        return TextReply(UNKNOWN_TYPE_APOLOGY)

    async def send(self, target: DeliveryTarget, reply: ReplyPayload) -> Optional[ReplyPayload]:
        """Deliver a reply and return what actually reached the user, if anything."""
        if await self.deliverer.deliver(target, reply):
            return reply
        if not has_image(reply):
            return None
        logger.warning("Image delivery failed, sending a text apology instead")
        apology = TextReply(DELIVERY_APOLOGY)
        if await self.deliverer.deliver(target, apology):
            return apology
        logger.error("Even the fallback message failed for %s", target.to_jid)
        return None

    async def text_reply(self, user_id: str, query: str) -> TextReply:
        answer = await self.text.answer(
            query,
            self.store.conversation(user_id),
            self.store.display_name(user_id),
        )
        return TextReply(answer or TEXT_APOLOGY)

    async def generate_image(self, image_prompt: str) -> Optional[str]:
        handle = await self.images.submit(image_prompt)
        if not handle:
            logger.error("Failed to get polling URL from image API")
            return None
        image_url = await self.poller.poll(handle)
        if not image_url:
            logger.error("Failed to get final image URL from polling")
        return image_url

    async def image_reply(self, query: str, extracted_context: str) -> ReplyPayload:
        subject = extracted_context or query
        image_prompt = await self.text.improve_prompt(subject, "image")
        logger.info("Enhanced image prompt: %s", image_prompt)
        image_url = await self.generate_image(image_prompt)
        if not image_url:
            return TextReply(IMAGE_APOLOGY)
        return ImageReply(image_url=image_url, prompt_text=image_prompt, subject=subject)

    async def search_reply(self, user_id: str, query: str) -> TextReply:
        processed = process_query(query, self._today())
        answer = await self.verifier.search_with_verification(
            processed, self.store.conversation(user_id)
        )
        if not answer:
            logger.info("No verified search response, falling back to a direct search call")
            answer = await self.search.search(processed)
        return TextReply(answer or SEARCH_APOLOGY)

    async def hybrid_reply(self, user_id: str, query: str, extracted_context: str) -> ReplyPayload:
        processed = process_query(query, self._today())
        parts = split_hybrid_query(processed)
        logger.info("Information query part: %r", parts.information)

        information = await self.verifier.search_with_verification(
            parts.information, self.store.conversation(user_id)
        )
        text = information or NO_INFORMATION

        image_prompt = await self.text.generate(
            prompt.HYBRID_IMAGE_TEMPLATE.format(
                information=information or "No specific information available",
                query=parts.image,
                extracted_context=extracted_context,
            ),
            system_prompt=prompt.HYBRID_IMAGE_SYSTEM_PROMPT,
        )
        image_prompt = image_prompt or extracted_context or parts.image
        logger.info("Enhanced hybrid image prompt: %s", image_prompt)

        image_url = await self.generate_image(image_prompt)
        if not image_url:
            return TextReply(text)
        return HybridReply(text=text, image_url=image_url, prompt_text=image_prompt)
