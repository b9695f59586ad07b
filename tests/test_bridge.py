from services.bridge import build_content, build_header
from services.message import Attachment, Asset, Candidate

from conftest import SOURCE, embed, image_attachment, make_message

CAT_URL = "https://cdn.example.com/attachments/cat.png"
DOG_URL = "https://cdn.example.com/attachments/dog.png"


def test_header_formats():
    msg = make_message(author="alice#0001")
    assert build_header(msg) == f"**alice#0001** from <#{SOURCE}>"
    assert build_header(msg, edited=True) == f"**alice#0001** from <#{SOURCE}> (edited)"
    anon = make_message(author=None, channel_id=None)
    assert build_header(anon) == "**Unknown#0000** from <#unknown-channel>"


def test_content_lists_urls_only_without_files():
    cands = [Candidate("https://a"), Candidate("https://b")]
    assert build_content("H", cands, []) == "H\nhttps://a\nhttps://b"
    assert build_content("H", cands, [Asset(b"x", "a.png")]) == "H"


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------

async def test_create_mirrors_image_and_records_ledger(bridge, bus, ledger, remote):
    remote.files[CAT_URL] = (b"meow", "image/png")
    msg = make_message(id="42", attachments=[image_attachment("cat.png")])

    await bridge.on_create(msg)

    assert len(bus.sent) == 1
    content, assets = bus.sent[0]
    assert content == f"**alice#0001** from <#{SOURCE}>"
    assert [(a.name, a.data) for a in assets] == [("cat.png", b"meow")]
    assert ledger.lookup("42") == "5001"


async def test_create_ignores_other_channels(bridge, bus, ledger, remote):
    remote.files[CAT_URL] = (b"meow", "image/png")
    await bridge.on_create(make_message(channel_id="222", attachments=[image_attachment()]))
    await bridge.on_create(make_message(channel_id=None, attachments=[image_attachment()]))

    assert bus.sent == []
    assert len(ledger) == 0
    assert remote.calls == []


async def test_create_ignores_bot_authors(bridge, bus, remote):
    remote.files[CAT_URL] = (b"meow", "image/png")
    await bridge.on_create(make_message(bot=True, attachments=[image_attachment()]))
    assert bus.sent == []


async def test_create_without_images_is_noop(bridge, bus, ledger, remote):
    msg = make_message(
        attachments=[Attachment(url="https://x/a.txt", content_type="text/plain", filename="a.txt")],
        embeds=[embed()],
    )
    await bridge.on_create(msg)
    assert bus.sent == []
    assert len(ledger) == 0


async def test_create_falls_back_to_urls_when_nothing_downloads(bridge, bus, ledger, remote):
    msg = make_message(
        id="7",
        attachments=[image_attachment("cat.png")],
        embeds=[embed(image_url="https://img.example.com/x.jpg")],
    )

    await bridge.on_create(msg)

    assert bus.sent == [
        (f"**alice#0001** from <#{SOURCE}>\n{CAT_URL}\nhttps://img.example.com/x.jpg", [])
    ]
    assert ledger.lookup("7") == "5001"


async def test_create_skips_oversized_but_sends_the_rest(cfg, bridge, bus, remote):
    cfg.max_upload_bytes = 8
    remote.files[CAT_URL] = (b"x" * 9, "image/png")
    remote.files[DOG_URL] = (b"woof", "image/png")
    msg = make_message(attachments=[image_attachment("cat.png"), image_attachment("dog.png")])

    await bridge.on_create(msg)

    content, assets = bus.sent[0]
    assert content == f"**alice#0001** from <#{SOURCE}>"
    assert [a.name for a in assets] == ["dog.png"]


async def test_create_aborts_when_target_unresolvable(bridge, bus, ledger, remote):
    bus.fail_channel = True
    remote.files[CAT_URL] = (b"meow", "image/png")

    await bridge.on_create(make_message(attachments=[image_attachment()]))

    assert bus.sent == []
    assert len(ledger) == 0


async def test_failed_send_records_nothing(bridge, bus, ledger, remote):
    bus.fail_send = True
    remote.files[CAT_URL] = (b"meow", "image/png")

    await bridge.on_create(make_message(id="9", attachments=[image_attachment()]))

    assert ledger.lookup("9") is None


async def test_handler_exceptions_are_contained(bridge, bus, monkeypatch):
    async def boom(*args, **kwargs):
        raise RuntimeError("kaboom")

    monkeypatch.setattr(bus, "fetch_channel", boom)

    # none of these may raise
    await bridge.on_create(make_message(attachments=[image_attachment()]))
    bridge.ledger.record("1", "100")
    await bridge.on_update(make_message(attachments=[image_attachment()]))
    await bridge.on_delete("1")


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------

async def _mirrored(bridge, remote, id="42"):
    remote.files[CAT_URL] = (b"meow", "image/png")
    await bridge.on_create(make_message(id=id, attachments=[image_attachment("cat.png")]))


async def test_update_with_same_images_replaces_mirror(bridge, bus, ledger, remote):
    await _mirrored(bridge, remote)
    old = ledger.lookup("42")

    await bridge.on_update(make_message(id="42", attachments=[image_attachment("cat.png")]))

    assert bus.deleted == [old]
    assert len(bus.sent) == 2
    content, assets = bus.sent[1]
    assert content == f"**alice#0001** from <#{SOURCE}> (edited)"
    assert [a.name for a in assets] == ["cat.png"]
    assert ledger.lookup("42") == "5002"
    assert ledger.lookup("42") != old


async def test_update_with_different_images_deletes_once_and_sends_once(bridge, bus, ledger, remote):
    await _mirrored(bridge, remote)
    remote.files[DOG_URL] = (b"woof", "image/png")
    sent_before = len(bus.sent)

    await bridge.on_update(make_message(id="42", attachments=[image_attachment("dog.png")]))

    assert bus.deleted == ["5001"]
    assert len(bus.sent) - sent_before == 1
    assert [a.name for a in bus.sent[-1][1]] == ["dog.png"]
    assert ledger.lookup("42") == "5002"


async def test_update_removing_images_deletes_mirror(bridge, bus, ledger, remote):
    await _mirrored(bridge, remote)

    await bridge.on_update(make_message(id="42"))

    assert bus.deleted == ["5001"]
    assert len(bus.sent) == 1
    assert ledger.lookup("42") is None


async def test_update_without_images_or_mirror_is_noop(bridge, bus, ledger, remote):
    await bridge.on_update(make_message(id="42"))
    assert bus.sent == [] and bus.deleted == []


async def test_update_of_unmirrored_message_creates_edited_mirror(bridge, bus, ledger, remote):
    remote.files[CAT_URL] = (b"meow", "image/png")

    await bridge.on_update(make_message(id="42", attachments=[image_attachment("cat.png")]))

    assert bus.deleted == []
    assert bus.sent[0][0] == f"**alice#0001** from <#{SOURCE}> (edited)"
    assert ledger.lookup("42") == "5001"


async def test_update_outside_sources_is_noop(bridge, bus, ledger, remote):
    await _mirrored(bridge, remote)

    await bridge.on_update(make_message(id="42", channel_id="222"))

    assert bus.deleted == []
    assert ledger.lookup("42") == "5001"


async def test_update_tolerates_mirror_already_gone(bridge, bus, ledger, remote):
    await _mirrored(bridge, remote)
    bus.existing.clear()  # someone removed the mirror by hand

    await bridge.on_update(make_message(id="42", attachments=[image_attachment("cat.png")]))

    assert bus.deleted == ["5001"]
    assert ledger.lookup("42") == "5002"


async def test_update_with_failed_resend_forgets_deleted_mirror(bridge, bus, ledger, remote):
    await _mirrored(bridge, remote)
    bus.fail_send = True

    await bridge.on_update(make_message(id="42", attachments=[image_attachment("cat.png")]))

    assert bus.deleted == ["5001"]
    assert ledger.lookup("42") is None


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------

async def test_delete_removes_mirror_and_is_idempotent(bridge, bus, ledger, remote):
    await _mirrored(bridge, remote)

    await bridge.on_delete("42")
    await bridge.on_delete("42")

    assert bus.deleted == ["5001"]
    assert ledger.lookup("42") is None


async def test_delete_of_unknown_message_is_noop(bridge, bus):
    await bridge.on_delete("nope")
    assert bus.deleted == []


async def test_delete_tolerates_mirror_already_gone(bridge, bus, ledger, remote):
    await _mirrored(bridge, remote)
    bus.existing.clear()

    await bridge.on_delete("42")

    assert ledger.lookup("42") is None


# ---------------------------------------------------------------------------
# Full lifecycle
# ---------------------------------------------------------------------------

async def test_create_edit_delete_lifecycle(bridge, bus, ledger, remote):
    remote.files[CAT_URL] = (b"meow", "image/png")
    msg = make_message(id="42", attachments=[image_attachment("cat.png")])

    await bridge.on_create(msg)
    first = ledger.lookup("42")
    assert bus.sent[0][0] == f"**alice#0001** from <#{SOURCE}>"

    await bridge.on_update(msg)
    second = ledger.lookup("42")
    assert second != first
    assert bus.sent[1][0].endswith("(edited)")

    await bridge.on_delete("42")
    await bridge.on_delete("42")
    assert bus.deleted == [first, second]
    assert ledger.lookup("42") is None
    assert bus.existing == set()
