import pytest

from sitesnap.config import DESKTOP_VIEWPORT, MOBILE_VIEWPORT
from sitesnap.render import RenderedPage


class RecordingPage:
    def __init__(self, name, log):
        self.name = name
        self.log = log
        self.closed = False

    async def set_viewport_size(self, viewport):
        self.log.append((self.name, "viewport", viewport))

    async def screenshot(self, path, full_page, type, quality):
        self.log.append((self.name, "screenshot", path, full_page, type, quality))

    async def close(self):
        self.closed = True


class RecordingContext:
    def __init__(self):
        self.closed = False

    async def close(self):
        self.closed = True


@pytest.mark.asyncio
async def test_mobile_capture_uses_mobile_context(tmp_path):
    log = []
    contexts = []
    desktop = RecordingPage("desktop", log)

    async def open_mobile(url):
        log.append(("mobile", "open", url))
        context = RecordingContext()
        contexts.append(context)
        return context, RecordingPage("mobile", log)

    rendered = RenderedPage(desktop, "https://example.org/", "<html></html>", 80, open_mobile)
    written = await rendered.capture_screenshots(tmp_path)

    assert [path.name for path in written] == ["screenshot_mobile.jpg", "screenshot_desktop.jpg"]
    assert log[0] == ("mobile", "open", "https://example.org/")
    assert log[1] == ("mobile", "screenshot", str(tmp_path / "screenshot_mobile.jpg"), True, "jpeg", 80)
    assert ("desktop", "viewport", DESKTOP_VIEWPORT) in log
    assert ("desktop", "viewport", MOBILE_VIEWPORT) not in log
    assert contexts[0].closed


@pytest.mark.asyncio
async def test_mobile_context_closed_when_capture_fails(tmp_path):
    context = RecordingContext()

    class BrokenPage(RecordingPage):
        async def screenshot(self, path, full_page, type, quality):
            raise RuntimeError("capture failed")

    async def open_mobile(url):
        return context, BrokenPage("mobile", [])

    rendered = RenderedPage(RecordingPage("desktop", []), "https://example.org/", "", 80, open_mobile)
    with pytest.raises(RuntimeError):
        await rendered.capture_screenshots(tmp_path)
    assert context.closed


@pytest.mark.asyncio
async def test_without_mobile_opener_viewport_is_resized(tmp_path):
    log = []
    rendered = RenderedPage(RecordingPage("desktop", log), "https://example.org/", "", 80)
    await rendered.capture_screenshots(tmp_path)
    assert log[0] == ("desktop", "viewport", MOBILE_VIEWPORT)
