import io
from typing import List, Optional

import pytest
from PIL import Image, ImageDraw

from recipe_ocr.models.recipe import EngineOutput, OCRMethod


CLEAN_TIRAMISU = """
Zutaten
1 serviert

• 2 Pakete Mascarpone à 250g
• Eine ausreichende Packung Löffelbisquits für eine Schüssel oder Auflaufform
• 4 Eier
• Kaffee
• Amaretto oder Cognac
• 3 Esslöffel Zucker
• Kakaopulver (herb, nicht süß)

Schritt 1
Ein paar Tassen starken Kaffee aufbrühen und erkalten lassen.

Schritt 2
Die Löffelbisquits nebeneinander in die Form legen.

Schritt 3
Wenn die Form voll ist, die Löffelbisquits mit dem Kaffee beträufeln bis sie gut feucht sind, aber nicht aufquellen.

Schritt 4
Den Mascarpone in einer Schüssel mit dem Zucker, den 4 Eigelb, Eiweiss steifgeschlagen und dem Amaretto (oder Cognac) verrühren. Anschließend gleichmäßig auf die Löffelbisquits verteilen.

Schritt 5
Das Kakaopulver in einer ersten Schicht und durch ein Sieb gleichmäßig auf der Tiramisu verteilen. Und jetzt ein paar Stunden durchziehen lassen. Kurz vor dem Servieren nochmal mit Kakaopulver auf die oberste Schicht streuen.
"""

# Real tesseract output of a phone photo of the same page
CORRUPTED_TIRAMISU = """
Tiramisu a la Herzchen:
Zubereitung (2 Schritte)

1
O 2 Pakete Mascarpone a 25og Die LoLöffelbisquits nebeneinander in die Form legen. OO Eine ausreichende Packung LoLöffelbisquits für eine Schüssel oder Schritt 3 Auflaufform O AE Wenn die Form voh ist, die LoLöffelbisquits mit dem Kaffee betraufeln ier a. . bis sie gut feucht sind, aber nicht aufquehen. O) Kaffee

2
(O) Amaretto oder Cognac Den Mascarpone in einer Schiissel mit dem Zucker, den 4 Eigelb, 2 o 3 Esslöffel Zucker Eiweiss steif geschlagen und dem Amaretto (oder Cognac) verrühren. O Kakaopulver (herb, nicht süß) Anschließend gleichmäßig auf die LoLöffelbisquits verteilen. Y Zur Einkaufsliste hinzufügen Schritt 5 i Das Kakaopulver in einer ersten Schicht und durch ein Sieb gleichmäßig auf der Tiramisu verteilen. Und jetzt ein paar Stunden durchziehen lassen. Kurz vor dem Servieren nochmal mit Kakaopulver auf die oberste Schicht streuen
"""


class FakeEngine:
    """Recognition engine stub that records how often it was called."""

    def __init__(
        self,
        method: OCRMethod,
        text: str = "",
        confidence: Optional[float] = None,
        error: Optional[BaseException] = None,
    ):
        self.method = method
        self.text = text
        self.confidence = confidence
        self.error = error
        self.calls: List[bytes] = []

    async def recognize(self, image: bytes) -> EngineOutput:
        self.calls.append(image)
        if self.error is not None:
            raise self.error
        return EngineOutput(text=self.text, confidence=self.confidence)


def make_image_bytes(fmt: str = "PNG", size=(400, 300)) -> bytes:
    """A white page with a dark block on it, encoded as `fmt`."""
    img = Image.new("RGB", size, "white")
    draw = ImageDraw.Draw(img)
    draw.rectangle((50, 60, 250, 120), fill="black")
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def clean_text():
    return CLEAN_TIRAMISU


@pytest.fixture
def corrupted_text():
    return CORRUPTED_TIRAMISU


@pytest.fixture
def png_bytes():
    return make_image_bytes("PNG")


@pytest.fixture
def jpeg_bytes():
    return make_image_bytes("JPEG")
