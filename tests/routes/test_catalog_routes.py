from datetime import date

from extensions import db
from factories import (
    create_category,
    create_console,
    create_emulator,
    create_firmware,
    create_game,
    create_handheld,
    create_preset,
    create_setup,
    create_tool,
)
from models import CfwCompatibleHandheld, EmulationPerformance


def test_landing_page(client):
    create_console(name="Dreamcast")
    db.session.commit()
    resp = client.get("/")
    html = resp.get_data(as_text=True)
    assert resp.status_code == 200
    assert "Emulators.wtf" in html
    assert "Dreamcast" in html


def test_health(client):
    resp = client.get("/api/health")
    data = resp.get_json()
    assert resp.status_code == 200
    assert data["status"] == "healthy"
    assert data["database"] == "connected"
    assert data["timestamp"].endswith("Z")


def test_console_list_and_detail(client):
    console = create_console(name="PlayStation 2", release_date=date(2000, 3, 4))
    create_emulator(name="PCSX2", console=console)
    create_game(name="Shadow of the Colossus", console=console)
    db.session.commit()

    assert "PlayStation 2" in client.get("/consoles").get_data(as_text=True)
    html = client.get(f"/console/{console.slug}").get_data(as_text=True)
    assert "PCSX2" in html
    assert "Shadow of the Colossus" in html
    assert "2000-03-04" in html


def test_list_filters_by_manufacturer(client):
    create_console(name="GameCube", manufacturer="Nintendo")
    create_console(name="Saturn", manufacturer="Sega")
    db.session.commit()
    html = client.get("/consoles?manufacturer=Sega").get_data(as_text=True)
    assert "Saturn" in html
    assert "GameCube</h2>" not in html


def test_list_paginates(client):
    for n in range(15):
        create_game(name=f"Game {n:02d}")
    db.session.commit()
    html = client.get("/games").get_data(as_text=True)
    assert "Showing 1-12 of 15" in html
    html = client.get("/games?page=2").get_data(as_text=True)
    assert "Showing 13-15 of 15" in html
    assert "Game 14" in html


def test_unknown_slug_is_404(client):
    resp = client.get("/handhelds/nope")
    assert resp.status_code == 404
    assert "Not found" in resp.get_data(as_text=True)


def test_handheld_detail_shows_specs_and_relations(client):
    handheld = create_handheld(name="Steam Deck", release_date=date(2022, 2, 25), ram="16 GB")
    emulator = create_emulator(name="Dolphin")
    firmware = create_firmware(name="Batocera")
    db.session.add(EmulationPerformance(handheld_id=handheld.id, emulator_id=emulator.id, performance_rating=5))
    db.session.add(CfwCompatibleHandheld(custom_firmware_id=firmware.id, handheld_id=handheld.id))
    db.session.commit()

    html = client.get(f"/handhelds/{handheld.slug}").get_data(as_text=True)
    assert "2022" in html
    assert "16 GB" in html
    assert "Dolphin" in html
    assert "5/5" in html
    assert "Batocera" in html
    assert "Add to Compare" in html


def test_firmware_detail_lists_compatible_handhelds(client):
    handheld = create_handheld(name="RG35XX")
    firmware = create_firmware(name="GarlicOS", features=["Save states"], installation_difficulty="easy")
    db.session.add(
        CfwCompatibleHandheld(custom_firmware_id=firmware.id, handheld_id=handheld.id, compatibility_notes="SD swap")
    )
    db.session.commit()
    html = client.get(f"/custom-firmware/{firmware.slug}").get_data(as_text=True)
    assert "RG35XX" in html
    assert "SD swap" in html
    assert "Save states" in html


def test_tool_and_game_detail(client):
    category = create_category(name="Utilities")
    tool = create_tool(name="RetroArch Scanner", category=category)
    game = create_game(name="Crazy Taxi")
    db.session.commit()
    assert "Utilities" in client.get(f"/tool/{tool.slug}").get_data(as_text=True)
    assert "Crazy Taxi" in client.get(f"/game/{game.slug}").get_data(as_text=True)


def test_search_groups_results(client):
    create_console(name="Dreamcast")
    create_emulator(name="Flycast (Dreamcast)")
    db.session.commit()
    html = client.get("/search?q=dreamcast").get_data(as_text=True)
    assert "Consoles" in html
    assert "Flycast (Dreamcast)" in html
    assert "Nothing matches" in client.get("/search?q=zzz").get_data(as_text=True)


def test_responses_carry_request_id(client):
    resp = client.get("/api/health", headers={"X-Request-ID": "abc123"})
    assert resp.headers["X-Request-ID"] == "abc123"
    assert resp.headers["X-Content-Type-Options"] == "nosniff"


def test_setup_list_filters_by_difficulty(client):
    create_setup(name="RetroArch on the Deck", difficulty_level="beginner", featured=True)
    create_setup(name="Flashing Onion OS", difficulty_level="advanced")
    db.session.commit()
    html = client.get("/setups").get_data(as_text=True)
    assert html.index("RetroArch on the Deck") < html.index("Flashing Onion OS")
    assert "Featured" in html

    html = client.get("/setups?difficulty_level=advanced").get_data(as_text=True)
    assert "Flashing Onion OS" in html
    assert "RetroArch on the Deck" not in html


def test_setup_detail_lists_steps_in_order(client):
    setup = create_setup(
        name="Batocera from USB",
        requirements=["16 GB USB stick"],
        steps=["Download the image", "Flash it with Etcher", "Boot from USB"],
        estimated_time="20 minutes",
    )
    db.session.commit()
    html = client.get(f"/setups/{setup.slug}").get_data(as_text=True)
    assert "16 GB USB stick" in html
    assert "20 minutes" in html
    assert html.index("Download the image") < html.index("Flash it with Etcher") < html.index("Boot from USB")
    assert client.get("/setups/nope").status_code == 404


def test_preset_list_shows_public_presets_only(client):
    deck = create_handheld(name="Steam Deck")
    create_preset(name="Deck essentials", handheld=deck)
    create_preset(name="Work in progress", is_public=False)
    db.session.commit()
    html = client.get("/presets").get_data(as_text=True)
    assert "Deck essentials" in html
    assert "Steam Deck" in html
    assert "Work in progress" not in html

    html = client.get(f"/presets?handheld_id={deck.id}").get_data(as_text=True)
    assert "Deck essentials" in html


def test_private_preset_is_404(client):
    preset = create_preset(name="Work in progress", is_public=False)
    db.session.commit()
    assert client.get(f"/presets/{preset.id}").status_code == 404
    assert client.post(f"/presets/{preset.id}/download").status_code == 404


def test_preset_detail_groups_items_by_type(client):
    emulator = create_emulator(name="DuckStation")
    firmware = create_firmware(name="Onion OS")
    preset = create_preset(name="Miyoo starter", items=[("custom_firmware", firmware), ("emulator", emulator)])
    db.session.commit()
    html = client.get(f"/presets/{preset.id}").get_data(as_text=True)
    assert html.index("<h2>Emulators</h2>") < html.index("DuckStation") < html.index("<h2>Custom firmware</h2>")
    assert html.index("<h2>Custom firmware</h2>") < html.index("Onion OS")
    assert "This preset has no items yet." not in html

    empty = create_preset(name="Blank")
    db.session.commit()
    assert "This preset has no items yet." in client.get(f"/presets/{empty.id}").get_data(as_text=True)


def test_preset_download_counts_and_exports_json(client):
    emulator = create_emulator(name="PPSSPP")
    preset = create_preset(name="PSP kit", created_by="retro_fan", items=[("emulator", emulator)])
    db.session.commit()

    resp = client.post(f"/presets/{preset.id}/download")
    data = resp.get_json()
    assert resp.status_code == 200
    assert resp.headers["Content-Disposition"] == f'attachment; filename="{preset.slug}.json"'
    assert data["name"] == "PSP kit"
    assert data["created_by"] == "retro_fan"
    assert data["items"] == [{"type": "emulator", "id": emulator.id, "name": "PPSSPP", "notes": None}]

    client.post(f"/presets/{preset.id}/download")
    db.session.refresh(preset)
    assert preset.download_count == 2
