import asyncio
from datetime import date

import pytest

from transcode_console.errors import AuthError, ValidationError
from transcode_console.services.listing import TaskListingController


@pytest.fixture
def listing(client):
    return TaskListingController(client, page_size=10)


@pytest.mark.anyio
async def test_page_translates_to_offset(listing, backend):
    for _ in range(47):
        backend.seed_task("completed")

    await listing.load()
    listing.go_to_page(3)
    page = await listing.load()

    assert len(page.tasks) == 10
    assert listing.total_pages == 5
    assert listing.window().pages == [1, 2, 3, 4, 5]
    _, _, params = backend.calls("GET", "/tasks")[-1]
    assert params["offset"] == "20"
    assert params["limit"] == "10"


@pytest.mark.anyio
async def test_go_to_page_clamps_before_first_load(listing):
    listing.go_to_page(4)

    assert listing.page == 1


@pytest.mark.anyio
async def test_go_to_page_clamps_to_last_page(listing, backend):
    for _ in range(12):
        backend.seed_task("pending")
    await listing.load()

    listing.go_to_page(9)

    assert listing.page == 2


@pytest.mark.anyio
async def test_filter_changes_reset_page(listing):
    listing.page = 4
    listing.set_status_filter("failed")
    assert listing.page == 1
    assert listing.status_filter == "failed"

    listing.page = 3
    listing.set_date_filter("2025-01-15")
    assert listing.page == 1

    listing.page = 2
    listing.clear_date_filter()
    assert listing.page == 1
    assert listing.date_filter is None


@pytest.mark.anyio
async def test_invalid_filters_are_rejected(listing):
    with pytest.raises(ValidationError):
        listing.set_status_filter("exploded")
    with pytest.raises(ValidationError):
        listing.set_date_filter("15/01/2025")


@pytest.mark.anyio
async def test_task_table_defaults_to_today(client, cfg):
    table = TaskListingController.for_task_table(client, cfg)

    assert table.date_filter == date.today().isoformat()
    assert table.status_filter is None


@pytest.mark.anyio
async def test_drilldown_is_locked_and_independent(client, cfg, backend):
    for _ in range(25):
        backend.seed_task("failed")
    table = TaskListingController.for_task_table(client, cfg)
    drill = TaskListingController.drilldown(client, cfg)

    drill.bind_status("failed")
    await drill.load()
    drill.go_to_page(3)
    await table.load()

    assert table.page == 1
    assert drill.page == 3
    with pytest.raises(ValidationError):
        drill.set_status_filter("completed")


@pytest.mark.anyio
async def test_refresh_returns_to_first_page(listing, backend):
    for _ in range(30):
        backend.seed_task("pending")
    await listing.load()
    listing.go_to_page(3)

    await listing.refresh()

    assert listing.page == 1
    _, _, params = backend.calls("GET", "/tasks")[-1]
    assert params["offset"] == "0"


@pytest.mark.anyio
async def test_poll_reloads_until_stopped(listing, backend):
    stop = asyncio.Event()
    poller = asyncio.create_task(listing.poll(0.01, stop))

    await asyncio.sleep(0.1)
    stop.set()
    await poller

    assert len(backend.calls("GET", "/tasks")) >= 2
    assert not listing.loading


@pytest.mark.anyio
async def test_poll_keeps_going_after_backend_error(listing, backend):
    backend.fail("GET", "/tasks", 500, {"error": "dynamodb throttled"})
    stop = asyncio.Event()
    poller = asyncio.create_task(listing.poll(0.01, stop))

    await asyncio.sleep(0.1)
    stop.set()
    await poller

    assert len(backend.calls("GET", "/tasks")) >= 2


@pytest.mark.anyio
async def test_poll_stops_on_auth_error(listing, backend):
    backend.revoke_tokens()

    with pytest.raises(AuthError):
        await listing.poll(0.01, asyncio.Event())


@pytest.mark.anyio
async def test_page_with_tasks_mid_processing_loads(listing, backend):
    backend.seed_task("processing", progress={"mp4_standard": "processing", "thumbnail": "pending"})
    backend.seed_task(
        "processing",
        progress={"mp4_standard": "processing", "thumbnail": "completed"},
        output_files={"mp4_standard": "out/a.mp4", "thumbnail": "out/a.jpg"},
    )
    backend.seed_task("completed")

    page = await listing.load()

    assert page.total == 3
    assert sorted(t.progress_summary() for t in page.tasks) == ["-", "0/2", "1/2"]
