"""Interaction layer against an in-memory page."""
import anyio
import pytest

from authflow_e2e.exceptions import ElementTimeout, InteractionError
from authflow_e2e.interactor import BaseInteractor
from authflow_e2e.locators import LocatorSet
from fakes import FakeElement, FakePage, make_session, make_settings

pytestmark = pytest.mark.asyncio


@pytest.fixture
def page():
    return FakePage()


@pytest.fixture
def ui(page):
    return BaseInteractor(make_session(make_settings(), page))


EMAIL = LocatorSet("email field", "input[type='email']", "#email")


async def test_first_matching_candidate_wins(ui, page):
    hidden = page.add("input[type='email']", visible=False)
    shown = page.add("#email")
    await ui.type(EMAIL, "a@b.test")
    assert shown.value == "a@b.test"
    assert hidden.value == ""


async def test_type_clears_before_writing_so_repeats_are_idempotent(ui, page):
    field = page.add("#email", value="stale")
    await ui.type(EMAIL, "a@b.test")
    await ui.type(EMAIL, "a@b.test")
    assert field.value == "a@b.test"


async def test_wait_visible_times_out_with_locator_context(ui):
    with pytest.raises(ElementTimeout) as excinfo:
        await ui.wait_visible(EMAIL, timeout=0.05)
    assert excinfo.value.payload["target"] == "email field"
    assert isinstance(excinfo.value, TimeoutError)


async def test_wait_visible_sees_element_that_appears_later(ui, page):
    async def appear():
        await anyio.sleep(0.05)
        page.add("#email")

    async with anyio.create_task_group() as tg:
        tg.start_soon(appear)
        element = await ui.wait_visible(EMAIL, timeout=1)
    assert await element.is_visible()


async def test_click_waits_for_enabled(ui, page):
    button = page.add("#go", enabled=False)

    async def enable():
        await anyio.sleep(0.05)
        button.enabled = True

    async with anyio.create_task_group() as tg:
        tg.start_soon(enable)
        await ui.click("#go", timeout=1)
    assert button.clicks == 1


async def test_click_failure_is_wrapped(ui, page):
    page.add("#go", fail_click=True)
    with pytest.raises(InteractionError) as excinfo:
        await ui.click("#go")
    assert excinfo.value.name == "click"


async def test_probes_never_raise(ui):
    assert await ui.is_displayed(EMAIL) is False
    assert await ui.is_enabled(EMAIL, timeout=0.05) is False
    assert await ui.is_checked("#terms") is False


async def test_read_helpers(ui, page):
    page.add("#msg", text="  Welcome back  ", attrs={"type": "password"})
    assert await ui.read_text("#msg") == "Welcome back"
    assert await ui.read_attr("#msg", "type") == "password"
    assert await ui.read_attr("#msg", "placeholder") == ""


async def test_wait_text_in_and_wait_gone(ui, page):
    banner = page.add(".alert", text="Saving...")

    async def finish():
        await anyio.sleep(0.05)
        banner.text = "Saved"
        await anyio.sleep(0.05)
        banner.visible = False

    async with anyio.create_task_group() as tg:
        tg.start_soon(finish)
        assert await ui.wait_text_in(".alert", "Saved", timeout=1) is True
        assert await ui.wait_gone(".alert", timeout=1) is True


async def test_wait_doc_ready_timeout(ui, page):
    page.ready = False
    with pytest.raises(ElementTimeout):
        await ui.wait_doc_ready(timeout=0.1)


async def test_scroll_select_and_check(ui, page):
    select = page.add("select[name='industry']")
    box = page.add("#terms")
    await ui.scroll_into("select[name='industry']")
    await ui.select_option("select[name='industry']", "Technology")
    await ui.set_checked("#terms", True)
    assert select.scripts == ["el => el.scrollIntoView(true)"]
    assert select.selected == "Technology"
    assert box.checked is True
    assert await ui.is_checked("#terms") is True


async def test_wait_url_change(ui, page):
    assert await ui.wait_url_change(page.url, timeout=0.05) is False

    async def redirect():
        await anyio.sleep(0.02)
        page.url = "http://app.test/dashboard"

    async with anyio.create_task_group() as tg:
        tg.start_soon(redirect)
        assert await ui.wait_url_change("http://app.test/", timeout=1) is True


async def test_count_and_text_presence(ui, page):
    page.add(".row")
    page.add(".row")
    page.html = "<p>check your email</p>"
    assert await ui.count(LocatorSet("rows", ".missing", ".row")) == 2
    assert await ui.is_text_present("check your email") is True
    assert await ui.is_text_present("nothing") is False


async def test_second_type_replaces_first_value(ui, page):
    field = page.add("#email")
    await ui.type(EMAIL, "x")
    await ui.type(EMAIL, "y")
    assert field.value == "y"
    assert field.fills == ["x", "y"]
