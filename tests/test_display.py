import pytest
from rich.console import Console

from csm_client.models import Configuration
from csm_client.utils import display

LAYERED = Configuration.model_validate(
    {
        "name": "zinal-cos-2.3",
        "lastUpdated": "2024-05-01T10:00:00Z",
        "layers": [
            {
                "name": "cos-integration",
                "cloneUrl": "https://vcs.example.com/vcs/cray/cos-config-management.git",
                "commit": "5c1a9f0e",
                "playbook": "site.yml",
            },
            {
                "name": "csm-packages",
                "cloneUrl": "https://vcs.example.com/vcs/cray/csm-config-management.git",
                "branch": "integration",
            },
        ],
    }
)


@pytest.fixture
def recorded(monkeypatch: pytest.MonkeyPatch) -> Console:
    console = Console(record=True, width=250)
    monkeypatch.setattr(display, "console", console)
    return console


def test_single_configuration_shows_layers(recorded: Console) -> None:
    display.display_configurations([LAYERED])

    output = recorded.export_text()
    assert "Layers - zinal-cos-2.3" in output
    assert "cos-integration" in output
    assert "https://vcs.example.com/vcs/cray/cos-config-management.git" in output
    assert "5c1a9f0e" in output
    assert "integration" in output


def test_several_configurations_show_summary(recorded: Console) -> None:
    other = Configuration(name="zinal-uan-1.0")

    display.display_configurations([LAYERED, other])

    output = recorded.export_text()
    assert "CFS Configurations" in output
    assert "Layers -" not in output
    assert "zinal-uan-1.0" in output


def test_no_configurations(recorded: Console) -> None:
    display.display_configurations([])

    assert "No configurations found" in recorded.export_text()
