import asyncio
import json
from pathlib import Path

from openpyxl import Workbook

from gas_complaints.config import Settings
from gas_complaints.main import main
from gas_complaints.sms import KavenegarGateway, RelayGateway, create_gateway
from gas_complaints.storage import LocalBackend, RemoteBackend, create_backend


def test_factory_picks_backend(tmp_path: Path):
    local = create_backend(Settings(data_dir=str(tmp_path)))
    assert isinstance(local, LocalBackend)
    assert local.is_remote is False

    remote = create_backend(Settings(supabase_url="https://p.supabase.co", supabase_key="k"))
    assert isinstance(remote, RemoteBackend)
    assert remote.is_remote is True
    asyncio.run(remote.close())


def test_factory_picks_gateway():
    direct = create_gateway(Settings())
    assert isinstance(direct, KavenegarGateway)
    relay = create_gateway(Settings(sms_relay_url="https://relay", supabase_key="anon"))
    assert isinstance(relay, RelayGateway)
    assert relay.headers == {"Authorization": "Bearer anon"}
    asyncio.run(direct.close())
    asyncio.run(relay.close())


def _local_env(monkeypatch, data_dir: Path) -> None:
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SUPABASE_ANON_KEY", raising=False)
    monkeypatch.delenv("SMS_RELAY_URL", raising=False)
    monkeypatch.setenv("GAS_COMPLAINTS_DATA_DIR", str(data_dir))


def test_main_seeds_local_store(tmp_path: Path, monkeypatch):
    _local_env(monkeypatch, tmp_path)
    assert main([]) == 0
    users = json.loads((tmp_path / "gas_app_users.json").read_text(encoding="utf-8"))
    assert {u["id"] for u in users} == {"admin", "1234567890", "eng1", "exec1"}


def test_main_imports_workbook(tmp_path: Path, monkeypatch):
    _local_env(monkeypatch, tmp_path / "data")
    wb = Workbook()
    ws = wb.active
    ws.append(["fullName", "id", "role"])
    ws.append(["Reza", "1111111111", "supervisor"])
    path = tmp_path / "engineers.xlsx"
    wb.save(path)

    assert main([str(path)]) == 0
    users = json.loads((tmp_path / "data" / "gas_app_users.json").read_text(encoding="utf-8"))
    assert {u["id"] for u in users} == {"admin", "1234567890", "1111111111"}

    ws.append(["Boss", "2222222222", "Manager"])
    wb.save(path)
    assert main([str(path)]) == 1
    after = json.loads((tmp_path / "data" / "gas_app_users.json").read_text(encoding="utf-8"))
    assert after == users


def test_main_reports_missing_workbook(tmp_path: Path, monkeypatch):
    _local_env(monkeypatch, tmp_path / "data")
    assert main([str(tmp_path / "nope.xlsx")]) == 1
    users = json.loads((tmp_path / "data" / "gas_app_users.json").read_text(encoding="utf-8"))
    assert {u["id"] for u in users} == {"admin", "1234567890", "eng1", "exec1"}
