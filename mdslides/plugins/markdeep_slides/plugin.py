"""
Markdeep Slides: turns notes tagged `mdslides` into HTML slide decks inside
the vault and previews them through the local slides server.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Set

from mdslides.core.config import SlidesSettings
from mdslides.core.debounce import Debouncer, KeyedDebouncer
from mdslides.core.errors import (
    GenerationError,
    NotEligibleError,
    ServerStartError,
    ServerStopError,
)
from mdslides.core.host import FrontMatter, VaultFile
from mdslides.core.plugin_interface import PluginInterface
from mdslides.core.renderer import render_body, strip_frontmatter
from mdslides.core.server import SlidesServer

logger = logging.getLogger(__name__)

SLIDES_TAG = "mdslides"
MARKDOWN_EXTENSION = "md"

# Command ids
CMD_GENERATE = "generate-markdeep-slides"
CMD_OPEN_PANE = "open-slides-in-browser"
CMD_OPEN_EXTERNAL = "open-slides-in-external-browser"
CMD_RESTART_SERVER = "restart-slides-server"

# Notices
MSG_NOT_TAGGED = 'File does not have "mdslides" in its tags.'
MSG_NO_MARKDOWN = 'No active Markdown file.'
MSG_GENERATION_FAILED = 'Failed to generate slides. See the log for details.'


def normalize_tags(value: Any) -> Optional[Set[str]]:
    """
    Front-matter tags as a set. Accepts a comma-separated string or a list;
    any other shape yields None.
    """
    if isinstance(value, str):
        return {t.strip() for t in value.split(',') if t.strip()}
    if isinstance(value, (list, tuple)):
        return {str(t).strip() for t in value if t is not None}
    return None


def has_mdslides_tag(frontmatter: Optional[Dict[str, Any]]) -> bool:
    if not isinstance(frontmatter, dict) or not frontmatter.get('tags'):
        return False
    tags = normalize_tags(frontmatter['tags'])
    return bool(tags) and SLIDES_TAG in tags


@dataclass
class SlideDocument:
    """A note as seen by one generation run."""
    source_path: str
    basename: str
    frontmatter: Optional[Dict[str, Any]]
    tags: Optional[Set[str]]
    body: str

    @classmethod
    def from_note(cls, file: VaultFile, text: str, frontmatter: Optional[FrontMatter]) -> "SlideDocument":
        data = frontmatter.data if frontmatter else None
        end_line = frontmatter.end_line if frontmatter else None
        return cls(
            source_path=file.path,
            basename=file.basename,
            frontmatter=data,
            tags=normalize_tags(data.get('tags')) if data else None,
            body=strip_frontmatter(text, end_line),
        )


class MarkdeepSlidesPlugin(PluginInterface):

    def __init__(self, server_factory=SlidesServer):
        self.settings = SlidesSettings()
        self.host = None
        self.server: Optional[SlidesServer] = None
        self._server_factory = server_factory
        self._debouncer = None
        self._unsubscribe = None

    def get_meta(self) -> Dict[str, Any]:
        return {
            'name': 'Markdeep Slides',
            'version': '1.0.0',
            'description': 'Generate Markdeep slide decks from tagged notes and preview them locally.',
            'author': 'mdslides',
        }

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def attach(self, host) -> None:
        """Bind to a host and load settings without starting anything."""
        self.host = host
        self.load_settings()

    def initialize(self, host, registry) -> None:
        self.attach(host)

        self.server = self._server_factory(self.settings.server_config(host.vault.base_path))
        self.start_server()

        self._debouncer = self._make_debouncer()
        self._unsubscribe = host.workspace.on_editor_change(self.on_editor_change)

        registry.register_command(CMD_GENERATE, 'Generate Markdeep Slides for current file', self.generate_for_active_file)
        registry.register_command(CMD_OPEN_PANE, 'Open Slides in Browser', self.open_slides_in_browser)
        registry.register_command(CMD_OPEN_EXTERNAL, 'Open Slides in External Browser', self.open_slides_in_external_browser)
        registry.register_command(CMD_RESTART_SERVER, 'Restart Slides Server', self.restart_server)

        logger.info('Markdeep Slides plugin loaded.')

    def shutdown(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None
        if self._debouncer:
            self._debouncer.cancel()
        if self.server:
            try:
                self.server.stop()
            except ServerStopError as e:
                logger.error(f"Failed to stop local server: {e}")
        logger.info('Markdeep Slides plugin unloaded.')

    def start_server(self) -> bool:
        """Start the server; a bind failure is reported once and the plugin keeps working."""
        try:
            self.server.start()
            return True
        except ServerStartError as e:
            self.host.notify(f"Failed to start local server: {e}")
            logger.error(f"Failed to start local server: {e}", exc_info=True)
            return False

    def restart_server(self) -> bool:
        try:
            self.server.stop()
        except ServerStopError as e:
            logger.error(f"Failed to stop local server: {e}")
        if self.start_server():
            self.host.notify(f"Slides server running on port {self.server.port}.")
            return True
        return False

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------
    def load_settings(self) -> None:
        self.settings = SlidesSettings.from_mapping(self.host.load_data())
        logger.debug(f"Settings loaded: {self.settings}")

    def save_settings(self) -> None:
        """Persist settings and push the served directory/port into the server."""
        self.host.save_data(self.settings.to_mapping())
        if not self.server:
            return

        self.server.set_base_directory(self.settings.absolute_slides_path(self.host.vault.base_path))
        if self.server.get_config().port != self.settings.port:
            self.server.set_port(self.settings.port)
            if self.server.is_running:
                self.restart_server()

        if self._debouncer:
            self._debouncer.cancel()
            self._debouncer = self._make_debouncer()

    def update_settings(self, changes: Dict[str, Any]) -> SlidesSettings:
        merged = {**self.settings.to_mapping(), **changes}
        self.settings = SlidesSettings.from_mapping(merged)
        self.save_settings()
        return self.settings

    # ------------------------------------------------------------------
    # Automatic regeneration
    # ------------------------------------------------------------------
    def _make_debouncer(self):
        if self.settings.debounce_per_file:
            return KeyedDebouncer(self.settings.debounce_ms, self._on_debounce_fired)
        return Debouncer(self.settings.debounce_ms, self._on_debounce_fired)

    def on_editor_change(self, file: VaultFile) -> None:
        if isinstance(self._debouncer, KeyedDebouncer):
            self._debouncer.trigger(file.path, file)
        else:
            self._debouncer.trigger()

    def _on_debounce_fired(self, file: Optional[VaultFile] = None) -> None:
        # The shared timer regenerates whatever file is active when it fires
        target = file if file is not None else self.host.workspace.get_active_file()
        if target is not None:
            self.generate_slides(target, True)

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------
    def output_path_for(self, file: VaultFile) -> str:
        return f"{self.settings.slides_path}/{file.basename}.html"

    def is_eligible(self, file: VaultFile) -> bool:
        frontmatter = self.host.vault.get_frontmatter(file)
        return has_mdslides_tag(frontmatter.data if frontmatter else None)

    def build_slides(self, file: VaultFile) -> str:
        """
        Generate the artifact for `file` and return its vault path.
        Raises NotEligibleError or GenerationError.
        """
        vault = self.host.vault
        frontmatter = vault.get_frontmatter(file)
        if not has_mdslides_tag(frontmatter.data if frontmatter else None):
            raise NotEligibleError(f"{file.path} is not tagged '{SLIDES_TAG}'")

        output_dir = self.settings.slides_path
        output_path = self.output_path_for(file)
        try:
            text = vault.read(file)
            document = SlideDocument.from_note(file, text, frontmatter)
            final_html = render_body(document.body)

            try:
                vault.create_folder(output_dir)
            except FileExistsError:
                pass

            existing = vault.get_file(output_path)
            if existing is not None:
                vault.modify(existing, final_html)
            else:
                vault.create(output_path, final_html)
        except OSError as e:
            raise GenerationError(f"Could not write slides for {file.path}: {e}") from e
        return output_path

    def generate_slides(self, file: Optional[VaultFile], is_auto: bool) -> Optional[str]:
        """
        Generate slides and report the outcome. Manual runs get notices;
        automatic runs only log. Returns the output path or None.
        """
        if not file or file.extension != MARKDOWN_EXTENSION:
            return None

        try:
            output_path = self.build_slides(file)
        except NotEligibleError:
            if not is_auto:
                self.host.notify(f"{MSG_NOT_TAGGED} Slides not generated.")
            return None
        except Exception as e:
            logger.error(f"Error generating slides for {file.path}: {e}", exc_info=True)
            if not is_auto:
                self.host.notify(MSG_GENERATION_FAILED)
            return None

        if not is_auto:
            self.host.notify(f"Slides generated successfully at: {output_path}")
        logger.info(f"Slides for {file.basename} processed.")
        return output_path

    def generate_for_active_file(self) -> Optional[str]:
        active = self.host.workspace.get_active_file()
        if not active:
            self.host.notify('No active file to generate slides from.')
            return None
        return self.generate_slides(active, False)

    # ------------------------------------------------------------------
    # Preview
    # ------------------------------------------------------------------
    def _preview_url(self) -> Optional[str]:
        active = self.host.workspace.get_active_file()
        if not active or active.extension != MARKDOWN_EXTENSION:
            self.host.notify(MSG_NO_MARKDOWN)
            return None

        if not self.is_eligible(active):
            self.host.notify(MSG_NOT_TAGGED)
            return None

        if self.host.vault.get_file(self.output_path_for(active)) is None:
            if self.generate_slides(active, False) is None:
                return None

        return self.server.url_for(f"{active.basename}.html")

    def open_slides_in_browser(self) -> Optional[str]:
        url = self._preview_url()
        if url is None:
            return None
        workspace = self.host.workspace
        # Only one slides pane at a time
        workspace.close_viewports()
        workspace.open_viewport(url)
        self.host.notify('Opening slides in a new pane.')
        return url

    def open_slides_in_external_browser(self) -> Optional[str]:
        url = self._preview_url()
        if url is None:
            return None
        self.host.workspace.open_external(url)
        self.host.notify('Opening slides in external browser...')
        return url


def get_plugin() -> MarkdeepSlidesPlugin:
    return MarkdeepSlidesPlugin()
