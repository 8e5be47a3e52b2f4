import time

import pytest

from manga_studio.errors import ProviderTransientError
from manga_studio.features.generation.prompt import STYLE_VARIATIONS, placeholder_image_ref
from manga_studio.features.generation.service import VariationGenerator
from manga_studio.features.pages.schemas import PageType
from manga_studio.lib.image_provider import OpenAIImageProvider, ProviderResult

from conftest import PLACEHOLDER_BASE, FakeImages, FakeOpenAIClient


class ScriptedProvider:
    """Duck-typed provider: fails the first `failures[i]` calls for style i."""
    available = True

    def __init__(self, failures=None, delays=None):
        self.failures = dict(failures or {})
        self.delays = delays or {}
        self.calls = []

    def _style(self, prompt):
        return next(i for i, s in enumerate(STYLE_VARIATIONS) if prompt.endswith(s))

    def generate(self, prompt):
        i = self._style(prompt)
        self.calls.append(i)
        time.sleep(self.delays.get(i, 0))
        if self.failures.get(i, 0) > 0:
            self.failures[i] -= 1
            return ProviderResult(error=ProviderTransientError("flaky"))
        return ProviderResult(image_ref=f"https://img.test/style-{i}.png")


@pytest.mark.parametrize("page_type", [t.value for t in PageType])
def test_three_variations_in_style_order(generator, page_type):
    out = generator.generate("two rivals meet at dawn", page_type)
    assert len(out) == 3
    for v, style in zip(out, STYLE_VARIATIONS):
        assert v.prompt.endswith(style)
        assert page_type in v.prompt
        assert "two rivals meet at dawn" in v.prompt
        assert v.image_ref
        assert v.selected is False


def test_same_input_same_prompts(generator):
    a = generator.generate("a quiet rooftop", "emotional")
    b = generator.generate("a quiet rooftop", "emotional")
    assert [v.prompt for v in a] == [v.prompt for v in b]


def test_failed_style_gets_placeholder_only_at_its_index():
    fake = FakeOpenAIClient(FakeImages(fail_when=lambda p: p.endswith(STYLE_VARIATIONS[1])))
    gen = VariationGenerator(
        OpenAIImageProvider(api_key="k", client=fake), placeholder_base_url=PLACEHOLDER_BASE
    )
    out = gen.generate("a duel", "action")
    assert out[0].image_ref.startswith("https://images.example.com/")
    assert out[1].image_ref == placeholder_image_ref(page_type="action", style_index=1, base_url=PLACEHOLDER_BASE)
    assert out[2].image_ref.startswith("https://images.example.com/")


def test_retries_before_falling_back():
    provider = ScriptedProvider(failures={0: 1, 2: 5})
    gen = VariationGenerator(provider, placeholder_base_url=PLACEHOLDER_BASE, retries=2)
    out = gen.generate("a duel", "action")
    assert out[0].image_ref == "https://img.test/style-0.png"
    assert out[1].image_ref == "https://img.test/style-1.png"
    assert out[2].image_ref == placeholder_image_ref(page_type="action", style_index=2, base_url=PLACEHOLDER_BASE)
    assert provider.calls.count(0) == 2
    assert provider.calls.count(2) == 2


def test_concurrent_calls_keep_style_order():
    # later styles finish first
    provider = ScriptedProvider(delays={0: 0.2, 1: 0.1, 2: 0.0})
    gen = VariationGenerator(provider, placeholder_base_url=PLACEHOLDER_BASE)
    out = gen.generate("a chase", "action")
    assert [v.image_ref for v in out] == [f"https://img.test/style-{i}.png" for i in range(3)]


def test_unavailable_provider_returns_distinct_placeholders_without_calls():
    fake = FakeOpenAIClient()
    gen = VariationGenerator(
        OpenAIImageProvider(api_key="", client=fake), placeholder_base_url=PLACEHOLDER_BASE
    )
    out = gen.generate("hero enters burning building", "action")

    assert len(out) == 3
    assert len({v.image_ref for v in out}) == 3
    for i, v in enumerate(out):
        assert "action" in v.prompt
        assert "hero enters burning building" in v.prompt
        assert v.image_ref == placeholder_image_ref(page_type="action", style_index=i, base_url=PLACEHOLDER_BASE)
    assert fake.images.calls == []


def test_placeholder_is_deterministic_and_network_free():
    ref = placeholder_image_ref(page_type="title", style_index=0, base_url="https://via.placeholder.com/")
    assert ref == "https://via.placeholder.com/400x600/6366f1/ffffff?text=Title+Page+1"
