from textual.app import App

from hostctl.config import Settings
from hostctl.profiles import Profile
from hostctl.screens.main import MainScreen


class HostctlApp(App):
    TITLE = "hostctl"

    CSS = """
    Screen {
        background: $surface;
    }
    """

    def __init__(self, profile: Profile, backend, settings: Settings, **kwargs):
        super().__init__(**kwargs)
        self.profile = profile
        self.backend = backend
        self.settings = settings
        self.sub_title = f"{profile.title} @ {backend.address}"
        self.last_log = ""

    def on_mount(self) -> None:
        self.push_screen(MainScreen(self.profile))

    async def action_quit(self) -> None:
        await self.backend.close()
        self.exit()

    async def on_unmount(self) -> None:
        await self.backend.close()
