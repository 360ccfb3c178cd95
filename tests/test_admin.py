from extensions import db
from factories import (
    create_category,
    create_console,
    create_emulator,
    create_firmware,
    create_handheld,
    create_preset,
)
from models import (
    AuditLog,
    Category,
    CfwCompatibleHandheld,
    Console,
    EmulationPerformance,
    Emulator,
    ErrorLog,
    Handheld,
    Preset,
    PresetItem,
    Setup,
    Tool,
)


def test_anonymous_is_sent_to_login(client):
    resp = client.get("/admin")
    assert resp.status_code == 302
    assert "/login" in resp.headers["Location"]


def test_anonymous_api_style_request_gets_401(client):
    resp = client.get("/admin", headers={"Accept": "application/json"})
    assert resp.status_code == 401


def test_non_admin_is_forbidden(client, create_user):
    user, password = create_user()
    client.post("/login", data={"identifier": user.username, "password": password})
    assert client.get("/admin").status_code == 403
    assert client.get("/admin/consoles").status_code == 403


def test_admin_page_loads(client, login_admin):
    login_admin()
    resp = client.get("/admin")
    assert resp.status_code == 200
    assert "Admin dashboard" in resp.get_data(as_text=True)


def test_unknown_resource_is_404(client, login_admin):
    login_admin()
    assert client.get("/admin/widgets").status_code == 404


def test_create_console(client, login_admin):
    login_admin()
    resp = client.post(
        "/admin/consoles/new",
        data={"name": "Nintendo 64", "manufacturer": "Nintendo", "release_date": "1996-06-23"},
        follow_redirects=True,
    )
    assert resp.status_code == 200
    console = Console.query.filter_by(name="Nintendo 64").one()
    assert console.slug == "nintendo-64"
    assert console.release_date.year == 1996
    assert AuditLog.query.filter_by(action="consoles_created").count() == 1


def test_create_assigns_suffixed_slug(client, login_admin):
    login_admin()
    create_console(name="Saturn")
    db.session.commit()
    client.post("/admin/consoles/new", data={"name": "Saturn"})
    assert sorted(c.slug for c in Console.query.all()) == ["saturn", "saturn-2"]


def test_create_rejects_invalid_input(client, login_admin):
    login_admin()
    resp = client.post("/admin/handhelds/new", data={"name": "", "price": "cheap"})
    assert resp.status_code == 400
    resp = client.post("/admin/handhelds/new", data={"name": "Odin", "price": "cheap"})
    assert resp.status_code == 400
    resp = client.post("/admin/handhelds/new", data={"name": "Odin", "image_url": "javascript:alert(1)"})
    assert resp.status_code == 400
    assert Handheld.query.count() == 0


def test_create_emulator_with_console(client, login_admin):
    login_admin()
    console = create_console(name="Dreamcast")
    db.session.commit()
    client.post("/admin/emulators/new", data={"name": "Flycast", "console_id": console.id})
    assert Emulator.query.filter_by(name="Flycast").one().console_id == console.id
    resp = client.post("/admin/emulators/new", data={"name": "Redream", "console_id": "missing"})
    assert resp.status_code == 400


def test_tool_category_must_be_a_tool_category(client, login_admin):
    login_admin()
    tools = create_category(name="Utilities", type=Category.TYPE_TOOL)
    apps = create_category(name="Launchers", type=Category.TYPE_CFW_APP)
    db.session.commit()

    resp = client.post("/admin/tools/new", data={"name": "Scraper", "category_id": apps.id})
    assert resp.status_code == 400
    assert Tool.query.count() == 0

    client.post("/admin/tools/new", data={"name": "Scraper", "category_id": tools.id})
    assert Tool.query.one().category_id == tools.id


def test_landing_counts_follow_admin_writes(client, login_admin):
    login_admin()
    client.get("/")
    client.post("/admin/consoles/new", data={"name": "Saturn"})
    html = client.get("/").get_data(as_text=True)
    assert "<strong>1</strong>" in html


def test_edit_and_delete(client, login_admin):
    login_admin()
    handheld = create_handheld(name="Odin 2")
    db.session.commit()

    assert client.get(f"/admin/handhelds/{handheld.id}").status_code == 200
    client.post(
        f"/admin/handhelds/{handheld.id}",
        data={"name": "Odin 2 Pro", "price": "$329", "ram": "12 GB", "slug": "odin-2-pro"},
    )
    db.session.expire_all()
    row = db.session.get(Handheld, handheld.id)
    assert row.name == "Odin 2 Pro"
    assert row.slug == "odin-2-pro"
    assert str(row.price) == "329.00"

    client.post(f"/admin/handhelds/{handheld.id}/delete")
    db.session.expire_all()
    assert db.session.get(Handheld, handheld.id) is None
    assert AuditLog.query.filter_by(action="handhelds_deleted").count() == 1


def test_firmware_handheld_manager(client, login_admin):
    login_admin()
    firmware = create_firmware(name="ArkOS")
    handheld = create_handheld(name="RG353V")
    db.session.commit()

    url = f"/admin/custom-firmware/{firmware.id}/handhelds"
    client.post(url, data={"action": "add", "handheld_id": handheld.id, "compatibility_notes": "Stable"})
    link = CfwCompatibleHandheld.query.one()
    assert link.compatibility_notes == "Stable"

    client.post(url, data={"action": "add", "handheld_id": handheld.id, "compatibility_notes": "Beta"})
    db.session.expire_all()
    assert CfwCompatibleHandheld.query.one().compatibility_notes == "Beta"

    client.post(url, data={"action": "remove", "handheld_id": handheld.id})
    assert CfwCompatibleHandheld.query.count() == 0


def test_performance_manager(client, login_admin):
    login_admin()
    handheld = create_handheld(name="Retroid Pocket 4")
    emulator = create_emulator(name="AetherSX2")
    db.session.commit()

    url = f"/admin/handhelds/{handheld.id}/performance"
    client.post(url, data={"action": "save", "emulator_id": emulator.id, "performance_rating": "4"})
    assert EmulationPerformance.query.one().performance_rating == 4

    client.post(url, data={"action": "save", "emulator_id": emulator.id, "performance_rating": "9"})
    db.session.expire_all()
    assert EmulationPerformance.query.one().performance_rating == 4

    client.post(url, data={"action": "remove", "emulator_id": emulator.id})
    assert EmulationPerformance.query.count() == 0


def test_logs_page_lists_errors(client, login_admin):
    login_admin()
    db.session.add(ErrorLog(error_message="Boom", stack_trace="Traceback", context={"endpoint": "x"}))
    db.session.commit()
    html = client.get("/admin/logs").get_data(as_text=True)
    assert "Boom" in html
    assert "login" in html


def test_create_setup_with_steps_and_featured_flag(client, login_admin):
    login_admin()
    resp = client.post(
        "/admin/setups/new",
        data={
            "name": "Onion OS on the Miyoo Mini",
            "difficulty_level": "intermediate",
            "featured": "1",
            "requirements": "Miyoo Mini Plus\nmicroSD card, 64 GB",
            "steps": "Format the card as FAT32\nCopy Onion to the card\n\nBoot the device",
        },
    )
    assert resp.status_code == 302
    setup = Setup.query.filter_by(name="Onion OS on the Miyoo Mini").one()
    assert setup.featured is True
    assert setup.requirements == ["Miyoo Mini Plus", "microSD card, 64 GB"]
    assert setup.steps == ["Format the card as FAT32", "Copy Onion to the card", "Boot the device"]

    client.post(f"/admin/setups/{setup.id}", data={"name": setup.name, "difficulty_level": "intermediate"})
    db.session.refresh(setup)
    assert setup.featured is False


def test_setup_requires_known_difficulty(client, login_admin):
    login_admin()
    resp = client.post("/admin/setups/new", data={"name": "Guide", "difficulty_level": "trivial"})
    assert resp.status_code == 400
    assert Setup.query.count() == 0


def test_create_preset_links_handheld(client, login_admin):
    login_admin()
    deck = create_handheld(name="Steam Deck")
    db.session.commit()
    client.post(
        "/admin/presets/new",
        data={"name": "Deck essentials", "handheld_id": deck.id, "created_by": "editor", "is_public": "1"},
    )
    preset = Preset.query.filter_by(name="Deck essentials").one()
    assert preset.handheld_id == deck.id
    assert preset.is_public is True
    assert preset.download_count == 0

    html = client.get("/admin/presets").get_data(as_text=True)
    assert f"/presets/{preset.id}" in html
    assert "Yes" in html


def test_preset_items_add_and_remove(client, login_admin):
    login_admin()
    emulator = create_emulator(name="DuckStation")
    preset = create_preset(name="PS1 kit")
    db.session.commit()
    url = f"/admin/presets/{preset.id}/items"

    resp = client.post(url, data={"action": "add", "item_ref": f"emulator:{emulator.id}", "notes": "Use the Vulkan renderer"})
    assert resp.status_code == 302
    entry = PresetItem.query.filter_by(preset_id=preset.id).one()
    assert entry.item_type == "emulator"
    assert entry.notes == "Use the Vulkan renderer"
    assert "emulator: DuckStation (Use the Vulkan renderer)" in client.get(f"/admin/presets/{preset.id}").get_data(as_text=True)

    # Adding the same item again only updates its notes.
    client.post(url, data={"action": "add", "item_ref": f"emulator:{emulator.id}"})
    assert PresetItem.query.filter_by(preset_id=preset.id).count() == 1

    client.post(url, data={"action": "add", "item_ref": "game:missing"})
    assert PresetItem.query.filter_by(preset_id=preset.id).count() == 1

    client.post(url, data={"action": "remove", "item_ref": f"emulator:{emulator.id}"})
    assert PresetItem.query.filter_by(preset_id=preset.id).count() == 0
    assert AuditLog.query.filter_by(action="preset_item_removed").count() == 1
