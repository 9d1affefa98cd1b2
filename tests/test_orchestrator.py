"""Tests for sitegen.orchestrator."""

from __future__ import annotations

import io
import threading
import zipfile

import pytest

from sitegen.deploy.vercel import VercelDeployment
from sitegen.errors import (
    DeploymentError,
    GenerationError,
    GenerationInProgressError,
    ProjectNotFoundError,
    ProviderError,
    RecordNotFoundError,
    SitegenError,
)
from sitegen.failsafe import PLACEHOLDER_DOCUMENT
from sitegen.models import FileType
from sitegen.orchestrator import Orchestrator
from tests._fixtures.site_builder import complete_page, provider_response


class RecordingLLMRunner:
    """Simple runner that captures prompts and replays a canned response."""

    def __init__(self, response: str | Exception) -> None:
        self.response = response
        self.calls: list[dict[str, object]] = []

    def run(self, prompt: str, *, system: str | None = None) -> str:
        self.calls.append({"prompt": prompt, "system": system})
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


class RecordingDeployer:
    """Test double for the Vercel client."""

    def __init__(self, url: str | None = "demo.vercel.app", error: Exception | None = None) -> None:
        self.url = url
        self.error = error
        self.remote_state = "READY"
        self.calls: list[dict[str, object]] = []

    def create_deployment(self, name, files, *, target="production"):
        self.calls.append({"name": name, "files": dict(files), "target": target})
        if self.error is not None:
            raise self.error
        return VercelDeployment(id="dpl_1", url=self.url, state="READY", raw={})

    def get_deployment(self, deployment_id):
        self.calls.append({"status": deployment_id})
        return VercelDeployment(id=deployment_id, url="demo-live.vercel.app", state=self.remote_state, raw={})


SITE_RESPONSE = provider_response(
    [
        {"path": "style.css", "content": "h1{color:teal}", "type": "css"},
        {"path": "index.html", "content": "<p>x</p>", "type": "html"},
        {"path": "index.html", "content": complete_page('<img src="assets/images/hero.jpg">'), "type": "html"},
        {"path": "logo.png", "content": "", "type": "image"},
    ],
    description="Teal bakery",
)


def _orchestrator(store, config, runner, deployer=None) -> Orchestrator:
    providers: list[str] = []

    def factory(provider: str):
        providers.append(provider)
        return runner

    orchestrator = Orchestrator(
        store,
        runner_factory=factory,
        config=config,
        deployer=deployer or RecordingDeployer(),
    )
    orchestrator.requested_providers = providers  # type: ignore[attr-defined]
    return orchestrator


def test_generate_reconciles_and_persists_files(store, config) -> None:
    runner = RecordingLLMRunner(SITE_RESPONSE)
    orchestrator = _orchestrator(store, config, runner)
    project = orchestrator.create_project("Bakery", "A teal bakery")

    result = orchestrator.generate(project.id, "A teal bakery", provider="OpenAI")

    assert orchestrator.requested_providers == ["openai"]
    assert "Return ONLY a valid JSON object" in runner.calls[0]["system"]
    assert [record.path for record in result.files] == ["index.html", "style.css", "logo.png"]
    assert "assets/images" not in result.files[0].content
    assert result.description == "Teal bakery"

    stored = store.get_project(project.id)
    assert stored.status == "COMPLETED"
    assert stored.description == "Teal bakery"
    assert stored.file_map()["logo.png"].type is FileType.OTHER
    assert stored.generations[-1].status == "COMPLETED"
    assert stored.generations[-1].provider == "openai"
    assert [entry.action for entry in stored.history] == ["CREATED", "GENERATED"]


def test_generate_uses_configured_default_provider(store, config) -> None:
    orchestrator = _orchestrator(store, config, RecordingLLMRunner(SITE_RESPONSE))
    project = orchestrator.create_project("Bakery", "p")

    orchestrator.generate(project.id, "p")

    assert orchestrator.requested_providers == ["cerebras"]


def test_generate_keeps_files_not_returned(store, config) -> None:
    orchestrator = _orchestrator(store, config, RecordingLLMRunner(SITE_RESPONSE))
    project = orchestrator.create_project("Bakery", "p")
    orchestrator.generate(project.id, "p")

    orchestrator._runner_factory = lambda _provider: RecordingLLMRunner(  # type: ignore[assignment]
        provider_response([{"path": "menu.html", "content": complete_page("<h1>Menu</h1>")}])
    )
    orchestrator.generate(project.id, "add a menu")

    assert set(store.get_project(project.id).file_map()) == {
        "index.html",
        "style.css",
        "logo.png",
        "menu.html",
    }


def test_modify_overlays_changes_and_sends_current_files(store, config) -> None:
    orchestrator = _orchestrator(store, config, RecordingLLMRunner(SITE_RESPONSE))
    project = orchestrator.create_project("Bakery", "p")
    orchestrator.generate(project.id, "p")

    runner = RecordingLLMRunner(
        '```json\n{"content": "Made headings red", "files": [{"path": "style.css", "content": "h1{color:red}", "type": "CSS"}]}\n```'
    )
    orchestrator._runner_factory = lambda _provider: runner  # type: ignore[assignment]
    result = orchestrator.modify(project.id, "Make headings red")

    assert "File: style.css" in runner.calls[0]["system"]
    assert "h1{color:teal}" in runner.calls[0]["system"]
    assert runner.calls[0]["prompt"] == "Make headings red"
    assert result.description == "Made headings red"
    files = store.get_project(project.id).file_map()
    assert files["style.css"].content == "h1{color:red}"
    assert set(files) == {"index.html", "style.css", "logo.png"}
    assert store.get_project(project.id).history[-1].action == "MODIFIED"


def test_provider_failure_marks_generation_failed(store, config) -> None:
    orchestrator = _orchestrator(store, config, RecordingLLMRunner(ProviderError("boom")))
    project = orchestrator.create_project("Bakery", "p")

    with pytest.raises(GenerationError, match="boom") as excinfo:
        orchestrator.generate(project.id, "p")

    assert isinstance(excinfo.value.__cause__, ProviderError)
    stored = store.get_project(project.id)
    assert stored.status == "FAILED"
    assert stored.generations[-1].status == "FAILED"
    assert stored.generations[-1].error == "boom"
    assert not orchestrator.is_generating(project.id)


def test_unparseable_response_fails_generation(store, config) -> None:
    orchestrator = _orchestrator(store, config, RecordingLLMRunner("I cannot help with that"))
    project = orchestrator.create_project("Bakery", "p")

    with pytest.raises(GenerationError):
        orchestrator.generate(project.id, "p")

    assert store.get_project(project.id).status == "FAILED"


def test_empty_file_set_fails_generation(store, config) -> None:
    orchestrator = _orchestrator(store, config, RecordingLLMRunner(provider_response([])))
    project = orchestrator.create_project("Bakery", "p")

    with pytest.raises(GenerationError, match="no files"):
        orchestrator.generate(project.id, "p")


def test_unknown_project_raises(store, config) -> None:
    orchestrator = _orchestrator(store, config, RecordingLLMRunner(SITE_RESPONSE))

    with pytest.raises(ProjectNotFoundError):
        orchestrator.generate("missing", "p")


def test_concurrent_generation_is_rejected(store, config) -> None:
    started = threading.Event()
    release = threading.Event()

    class BlockingRunner:
        def run(self, prompt, *, system=None):
            started.set()
            release.wait(timeout=5)
            return SITE_RESPONSE

    orchestrator = _orchestrator(store, config, BlockingRunner())
    project = orchestrator.create_project("Bakery", "p")
    errors: list[BaseException] = []

    def _background() -> None:
        try:
            orchestrator.generate(project.id, "p")
        except BaseException as exc:  # pragma: no cover - surfaced below
            errors.append(exc)

    worker = threading.Thread(target=_background)
    worker.start()
    assert started.wait(timeout=5)
    try:
        assert orchestrator.is_generating(project.id)
        with pytest.raises(GenerationInProgressError):
            orchestrator.generate(project.id, "again")
    finally:
        release.set()
        worker.join(timeout=5)

    assert errors == []
    assert not orchestrator.is_generating(project.id)


def test_stream_generate_yields_events_in_order(store, config) -> None:
    orchestrator = _orchestrator(store, config, RecordingLLMRunner(SITE_RESPONSE))
    project = orchestrator.create_project("Bakery", "p")

    events = list(orchestrator.stream_generate(project.id, "p"))

    types = [event["type"] for event in events]
    assert types[0] == "project"
    assert "status" in types
    assert types[-1] == "complete"
    file_events = [event["data"]["path"] for event in events if event["type"] == "file"]
    assert file_events == ["index.html", "style.css", "logo.png"]
    progress = [event["data"]["progress"] for event in events if event["type"] == "status"]
    assert progress == sorted(progress)
    assert events[-1]["data"]["file_count"] == 3


def test_stream_generate_reports_errors_as_event(store, config) -> None:
    orchestrator = _orchestrator(store, config, RecordingLLMRunner(ProviderError("down")))
    project = orchestrator.create_project("Bakery", "p")

    events = list(orchestrator.stream_generate(project.id, "p"))

    assert events[-1]["type"] == "error"
    assert "down" in events[-1]["data"]["message"]


def test_preview_and_exports(store, config) -> None:
    orchestrator = _orchestrator(store, config, RecordingLLMRunner(SITE_RESPONSE))
    project = orchestrator.create_project("Teal Bakery", "p")
    orchestrator.generate(project.id, "p")

    html = orchestrator.preview(project.id)
    assert "h1{color:teal}" in html

    filename, payload = orchestrator.export_zip(project.id)
    assert filename == "teal_bakery.zip"
    with zipfile.ZipFile(io.BytesIO(payload)) as archive:
        assert "README.md" in archive.namelist()

    exported = orchestrator.export_json(project.id)
    assert exported["title"] == "Teal Bakery"
    assert len(exported["files"]) == 3
    assert orchestrator.history(project.id)[-1].action == "EXPORTED"


def test_deploy_records_deployment(store, config) -> None:
    deployer = RecordingDeployer()
    orchestrator = _orchestrator(store, config, RecordingLLMRunner(SITE_RESPONSE), deployer)
    project = orchestrator.create_project("Teal Bakery", "p")
    orchestrator.generate(project.id, "p")

    deployment = orchestrator.deploy(project.id)

    assert deployment.url == "https://demo.vercel.app"
    assert deployment.provider_deployment_id == "dpl_1"
    call = deployer.calls[0]
    assert call["name"].startswith("teal-bakery-")
    assert call["target"] == "production"
    assert list(call["files"])[0] == "index.html"
    stored = store.get_project(project.id)
    assert stored.deployments[0].url == "https://demo.vercel.app"
    assert stored.history[-1].action == "DEPLOYED"


def test_deploy_uses_preview_fallback_for_unusable_urls(store, config) -> None:
    config.deploy.preview_base_url = "https://sites.example.com/"
    orchestrator = _orchestrator(
        store, config, RecordingLLMRunner(SITE_RESPONSE), RecordingDeployer(url="http://localhost:3000")
    )
    project = orchestrator.create_project("Bakery", "p")
    orchestrator.generate(project.id, "p")

    deployment = orchestrator.deploy(project.id)

    assert deployment.url == f"https://sites.example.com/projects/{project.id}/preview"


def test_deploy_failures_are_recorded(store, config) -> None:
    deployer = RecordingDeployer(error=DeploymentError("quota", status=402))
    orchestrator = _orchestrator(store, config, RecordingLLMRunner(SITE_RESPONSE), deployer)
    project = orchestrator.create_project("Bakery", "p")

    with pytest.raises(DeploymentError, match="no files"):
        orchestrator.deploy(project.id)

    orchestrator.generate(project.id, "p")
    with pytest.raises(DeploymentError, match="quota"):
        orchestrator.deploy(project.id)
    assert store.get_project(project.id).history[-1].action == "DEPLOY_FAILED"


def test_transport_timeout_marks_generation_failed(store, config) -> None:
    orchestrator = _orchestrator(
        store, config, RecordingLLMRunner(TimeoutError("The read operation timed out"))
    )
    project = orchestrator.create_project("Bakery", "p")

    with pytest.raises(GenerationError, match="timed out") as excinfo:
        orchestrator.generate(project.id, "p")

    assert isinstance(excinfo.value.__cause__, TimeoutError)
    stored = store.get_project(project.id)
    assert stored.status == "FAILED"
    assert stored.generations[-1].status == "FAILED"
    assert stored.generations[-1].error == "The read operation timed out"
    assert stored.history[-1].action == "FAILED"
    assert not orchestrator.is_generating(project.id)


def test_stream_closed_before_completion_marks_generation_failed(store, config) -> None:
    orchestrator = _orchestrator(store, config, RecordingLLMRunner(SITE_RESPONSE))
    project = orchestrator.create_project("Bakery", "p")

    stream = orchestrator.stream_generate(project.id, "p")
    first = next(stream)
    assert first["type"] == "project"
    assert store.get_project(project.id).status == "GENERATING"
    stream.close()

    stored = store.get_project(project.id)
    assert stored.status == "FAILED"
    assert stored.generations[-1].status == "FAILED"
    assert "disconnected" in stored.generations[-1].error
    assert not orchestrator.is_generating(project.id)


def test_stream_closed_after_saving_keeps_completed_run(store, config) -> None:
    orchestrator = _orchestrator(store, config, RecordingLLMRunner(SITE_RESPONSE))
    project = orchestrator.create_project("Bakery", "p")

    stream = orchestrator.stream_generate(project.id, "p")
    for event in stream:
        if event["type"] == "file":
            break
    stream.close()

    stored = store.get_project(project.id)
    assert stored.status == "COMPLETED"
    assert stored.generations[-1].status == "COMPLETED"


def test_reference_images_reach_the_prompt(store, config) -> None:
    runner = RecordingLLMRunner(SITE_RESPONSE)
    orchestrator = _orchestrator(store, config, runner)
    project = orchestrator.create_project("Bakery", "p")

    orchestrator.generate(project.id, "A bakery", images=["https://img.example.com/mood.jpg"])
    orchestrator.modify(project.id, "Warmer colours", images=["https://img.example.com/palette.png"])

    assert "https://img.example.com/mood.jpg" in runner.calls[0]["prompt"]
    assert "https://img.example.com/palette.png" in runner.calls[1]["prompt"]


def test_update_project_records_history(store, config) -> None:
    orchestrator = _orchestrator(store, config, RecordingLLMRunner(SITE_RESPONSE))
    project = orchestrator.create_project("Bakery", "p")

    updated = orchestrator.update_project(project.id, title="  Corner Bakery ", description="Fresh bread")

    assert updated.title == "Corner Bakery"
    assert updated.description == "Fresh bread"
    entry = store.get_project(project.id).history[-1]
    assert entry.action == "UPDATED"
    assert "Corner Bakery" in entry.details
    with pytest.raises(SitegenError, match="title"):
        orchestrator.update_project(project.id, title="   ")


def test_update_file_keeps_html_reconciled(store, config) -> None:
    orchestrator = _orchestrator(store, config, RecordingLLMRunner(SITE_RESPONSE))
    project = orchestrator.create_project("Bakery", "p")
    orchestrator.generate(project.id, "p")

    page = orchestrator.update_file(
        project.id, "index.html", "<body><img src='assets/images/team.png'> Our bakers bake every morning.</body>"
    )
    css = orchestrator.update_file(project.id, "style.css", "h1{color:red}")

    assert page.content.startswith("<!DOCTYPE html>")
    assert "</html>" in page.content
    assert "assets/images" not in page.content
    assert css.content == "h1{color:red}"
    stored = store.get_project(project.id).file_map()
    assert stored["index.html"].content == page.content
    assert stored["index.html"].type is FileType.HTML
    assert store.get_project(project.id).history[-1].action == "FILE_UPDATED"

    short = orchestrator.update_file(project.id, "index.html", "hi")
    assert short.content == PLACEHOLDER_DOCUMENT


def test_update_file_rejects_unknown_paths(store, config) -> None:
    orchestrator = _orchestrator(store, config, RecordingLLMRunner(SITE_RESPONSE))
    project = orchestrator.create_project("Bakery", "p")
    orchestrator.generate(project.id, "p")

    with pytest.raises(RecordNotFoundError):
        orchestrator.update_file(project.id, "about.html", "<p>x</p>")
    assert "about.html" not in store.get_project(project.id).file_map()


def test_deployment_status_refreshes_from_vercel(store, config) -> None:
    deployer = RecordingDeployer()
    orchestrator = _orchestrator(store, config, RecordingLLMRunner(SITE_RESPONSE), deployer)
    project = orchestrator.create_project("Bakery", "p")
    orchestrator.generate(project.id, "p")
    deployment = orchestrator.deploy(project.id)

    deployer.remote_state = "ERROR"
    status = orchestrator.deployment_status(project.id, deployment.id)

    assert status.status == "ERROR"
    assert status.url == "https://demo-live.vercel.app"
    assert deployer.calls[-1] == {"status": "dpl_1"}
    assert store.get_deployment(project.id, deployment.id).status == "ERROR"

    cached = orchestrator.deployment_status(project.id, deployment.id, refresh=False)
    assert cached.status == "ERROR"
    with pytest.raises(RecordNotFoundError):
        orchestrator.deployment_status(project.id, "missing")
