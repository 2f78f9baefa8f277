"""Example inference client adapter.

Use this module as a reference when implementing new provider adapters.
Implement BaseInferenceClient and register the provider in InferenceClientFactory.
"""

import json
from typing import Any, ClassVar

from vertex_processor.inference.client_base import BaseInferenceClient


class ExampleClientAdapter(BaseInferenceClient):
    """Example adapter that returns a fixed invoice extraction.

    No network calls. Useful for local development and tests.
    """

    DEFAULT_EXTRACTION: ClassVar[dict[str, object]] = {
        "fields": {
            "Invoice_Number": "INV-0001",
            "Invoice_Date": "01/04/2024",
            "Seller_GSTIN": "27AAAAA0000A1Z5",
            "Seller_Name": "Example Traders",
            "Buyer_Name": "Example Buyer",
            "Sub_Total_Amount": 1000,
            "CGST_Amount": 90,
            "SGST_Amount": 90,
            "Total_Tax_Amount": 180,
        },
        "fields_confidence": {
            "Invoice_Number": 0.95,
            "Invoice_Date": 0.9,
            "Seller_GSTIN": 0.85,
            "Seller_Name": 0.8,
            "Buyer_Name": 0.8,
            "Sub_Total_Amount": 0.9,
            "CGST_Amount": 0.9,
            "SGST_Amount": 0.9,
            "Total_Tax_Amount": 0.9,
        },
    }

    def __init__(self) -> None:
        pass

    async def generate_content(
        self,
        *,
        model: str,
        location: str,
        body: dict[str, Any],
    ) -> dict[str, Any]:
        _ = location, body
        return {
            "candidates": [
                {"content": {"role": "model", "parts": [{"text": json.dumps(self.DEFAULT_EXTRACTION)}]}}
            ],
            "usageMetadata": {"promptTokenCount": 0, "candidatesTokenCount": 0},
            "modelVersion": model,
        }

    async def batch_generate_content(
        self,
        *,
        model: str,
        location: str,
        bodies: list[dict[str, Any]],
    ) -> list[dict[str, Any]]:
        return [
            await self.generate_content(model=model, location=location, body=body)
            for body in bodies
        ]
