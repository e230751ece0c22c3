import pytest

from doodle.services.classifier import OpenAIClassifier, _parse_answer


def test_parse_answer_json():
    assert _parse_answer('{"answer": "Cat"}') == "Cat"
    assert _parse_answer('```json\n{"answer": "dog"}\n```') == "dog"


def test_parse_answer_plain_text():
    assert _parse_answer("Sun.") == "Sun"
    assert _parse_answer("   ") is None
    assert _parse_answer('{"answer": ""}') is None


class _Msg:
    def __init__(self, content):
        self.content = content


class _Choice:
    def __init__(self, content):
        self.message = _Msg(content)


class _Resp:
    def __init__(self, contents):
        self.choices = [_Choice(c) for c in contents]


class FakeCompletions:
    def __init__(self, contents):
        self.contents = contents
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        return _Resp(self.contents)


class FakeClient:
    def __init__(self, contents):
        self.chat = type("Chat", (), {"completions": FakeCompletions(contents)})()


@pytest.mark.asyncio
async def test_classify_sends_image_and_reads_answer():
    client = FakeClient(['{"answer": "Tree"}'])
    classifier = OpenAIClassifier(api_key="x", model="gpt-4o", client=client)

    assert await classifier.classify("data:image/png;base64,AAA") == "Tree"
    content = client.chat.completions.kwargs["messages"][0]["content"]
    assert content[1]["image_url"]["url"] == "data:image/png;base64,AAA"


@pytest.mark.asyncio
async def test_classify_no_choices():
    classifier = OpenAIClassifier(api_key="x", client=FakeClient([]))
    assert await classifier.classify("img") is None
