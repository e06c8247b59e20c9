from __future__ import annotations

import logging
from typing import List, Optional

from ..agent.prompts import (
    DIRECT_ANSWER_NO_PRODUCTS,
    DIRECT_ANSWER_PRODUCT_TEMPLATE,
    DIRECT_ANSWER_PROMPT,
)
from ..agent.protocols import ChatModel
from ..agent.retrieval.hybrid_retriever import HybridRetriever
from ..agent.retry import BackoffExecutor
from ..agent.types import Item, Message, SearchEnvelope


class DirectAnswerService:
    """Single-shot answers: retrieve a few products, then one model call.

    No tool loop and no conversation state. Runs at a higher temperature than
    the agent for more natural phrasing.
    """

    DEFAULT_TEMPERATURE = 0.3
    DEFAULT_K = 3
    FALLBACK_ANSWER = (
        "I'm sorry, I'm having trouble processing your request right now. "
        "Please try again later."
    )

    def __init__(
        self,
        retriever: HybridRetriever,
        chat_model: ChatModel,
        executor: Optional[BackoffExecutor] = None,
        temperature: float = DEFAULT_TEMPERATURE,
        k: int = DEFAULT_K,
    ):
        self.retriever = retriever
        self.chat_model = chat_model
        self.executor = executor or BackoffExecutor()
        self.temperature = temperature
        self.k = k
        self.logger = logging.getLogger("inventory_agent.services.direct_answer")

    async def answer(self, message: str) -> str:
        try:
            products = await self.retrieve_products(message)
            prompt = self.build_prompt(message, products)
            response = await self.executor.run(
                lambda: self.chat_model.invoke(
                    (Message.human(prompt),),
                    temperature=self.temperature,
                )
            )
            return response.content
        except Exception:
            self.logger.exception("Direct answer failed")
            return self.FALLBACK_ANSWER

    async def retrieve_products(self, message: str) -> List[Item]:
        outcome = await self.retriever.search(message, self.k)
        if not isinstance(outcome, SearchEnvelope):
            self.logger.warning(
                "No products for direct answer",
                extra={"error": outcome.error, "details": outcome.details},
            )
            return []
        return list(outcome.results)

    @staticmethod
    def build_prompt(message: str, products: List[Item]) -> str:
        if products:
            listing = "\n\n".join(
                DIRECT_ANSWER_PRODUCT_TEMPLATE.format(
                    index=index,
                    name=product.item_name,
                    brand=product.brand,
                    sale_price=product.prices.sale_price,
                    full_price=product.prices.full_price,
                    categories=", ".join(product.categories),
                    description=product.item_description,
                )
                for index, product in enumerate(products, start=1)
            )
        else:
            listing = DIRECT_ANSWER_NO_PRODUCTS
        return DIRECT_ANSWER_PROMPT.format(message=message, products=listing)
