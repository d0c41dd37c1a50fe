import asyncio
import getpass
import logging
import shlex
import sys
from pathlib import Path
from typing import Optional, Set

if __name__ == "__main__":
    project_root = Path(__file__).parent.parent
    sys.path.insert(0, str(project_root))

from frontend.clients import AnalysisClient, AnalysisFailed, BackendClient, BackendError, PersistenceClient
from frontend.config import config
from frontend.export_utils import ExportError
from frontend.history import HistoryBrowser
from frontend.image_exporter import export_as_image
from frontend.intake import ImageIntake
from frontend.models import AnalysisResult, BIAS_FILTERS, ChartAnalysis
from frontend.pdf_exporter import export_as_pdf
from frontend.presenter import HistoryCard, ResultPanel
from frontend.session import Session, SessionContext, SignInRequired

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

HELP = """Commands:
  open <path>                 select a chart image
  clear                       drop the selected image
  analyze                     analyze the selected image
  history [all|bullish|bearish|ranging]
  delete <id>                 delete an analysis (asks first)
  export <pdf|png> <id>       export an analysis
  signin | signup | signout
  help | quit"""


class ChartVisionApp:
    def __init__(self, session: SessionContext, backend: BackendClient, analysis_client: AnalysisClient):
        self.session = session
        self.backend = backend
        self.analysis_client = analysis_client
        self.persistence = PersistenceClient(backend, session)
        self.history = HistoryBrowser(backend, session)
        self.intake = ImageIntake()
        self.result: Optional[AnalysisResult] = None
        self.is_analyzing = False
        self._pending_saves: Set[asyncio.Task] = set()
        self.intake.on_change(self._reset_result)
        self._unsubscribe = session.subscribe(self._on_session_change)

    def _reset_result(self, image) -> None:
        self.result = None

    def _on_session_change(self, session: Optional[Session]) -> None:
        if session is None:
            self.history.analyses = []
            print("👋 Signed out")
        else:
            print(f"👤 Signed in as {session.email}")

    # ----- image intake / analysis -----

    def open_image(self, path: str) -> None:
        try:
            accepted = self.intake.select_path(path)
        except OSError as e:
            print(f"❌ Cannot read {path}: {e.strerror or e}")
            return
        if accepted:
            print(f"🖼️  Selected {self.intake.selected.name}. Type 'analyze' to continue.")

    async def analyze(self) -> None:
        image = self.intake.selected
        if image is None:
            print("❌ Please upload an image first")
            return
        if self.is_analyzing:
            return
        self.is_analyzing = True
        self.result = None
        print("\n🔄 Analyzing...\n")
        try:
            self.result = await self.analysis_client.analyze(image)
        except AnalysisFailed as e:
            print(f"❌ {e}\n")
            return
        finally:
            self.is_analyzing = False

        print(ResultPanel.from_result(self.result).render())
        print("\n✅ Analysis complete!\n")
        task = asyncio.create_task(self.persistence.save(image, self.result))
        self._pending_saves.add(task)
        task.add_done_callback(self._pending_saves.discard)

    async def drain(self) -> None:
        if self._pending_saves:
            await asyncio.gather(*self._pending_saves)

    # ----- auth -----

    async def sign_in(self, create: bool = False) -> bool:
        # prompts run off the event loop
        email = (await asyncio.to_thread(input, "Email: ")).strip()
        password = await asyncio.to_thread(getpass.getpass, "Password: ")
        try:
            if create:
                await self.session.sign_up(email, password)
            else:
                await self.session.sign_in(email, password)
        except BackendError as e:
            print(f"❌ {e.message}")
            return False
        return True

    # ----- history -----

    async def show_history(self, bias_filter: str = "all") -> None:
        try:
            self.history.bias_filter = bias_filter
        except ValueError as e:
            print(f"❌ {e}")
            return
        try:
            await self.history.load()
        except SignInRequired as e:
            print(f"🔒 {e}")
            if not await self.sign_in():
                return
            await self.history.load()
        except BackendError as e:
            print(f"❌ {e.message}")
            return

        visible = self.history.visible
        if not self.history.analyses:
            print("No analyses yet. Upload a chart to get started!")
            return
        if not visible:
            print(f"No {bias_filter} analyses.")
            return
        print(f"\n📚 Analysis History ({len(visible)})\n")
        for record in visible:
            print(HistoryCard.from_record(record).render())
            print()

    async def _find(self, id_prefix: str) -> Optional[ChartAnalysis]:
        if not self.history.analyses:
            await self.history.load()
        matches = [a for a in self.history.analyses if str(a.get("id", "")).startswith(id_prefix)]
        if len(matches) != 1:
            print(f"❌ {'No' if not matches else 'More than one'} analysis matches '{id_prefix}'")
            return None
        return matches[0]

    async def delete(self, id_prefix: str) -> None:
        record = await self._find(id_prefix)
        if record is None:
            return

        answer = await asyncio.to_thread(
            input, f"Delete analysis {record['id'][:8]}? This cannot be undone. [y/N] "
        )
        confirmed = answer.strip().lower() in ("y", "yes")

        try:
            if await self.history.delete(record["id"], lambda: confirmed):
                print("🗑️  Analysis deleted")
        except BackendError as e:
            print(f"❌ Failed to delete analysis: {e.message}")

    async def export(self, kind: str, id_prefix: str) -> None:
        if kind not in ("pdf", "png"):
            print("❌ Export format must be 'pdf' or 'png'")
            return
        record = await self._find(id_prefix)
        if record is None:
            return
        exporter = export_as_pdf if kind == "pdf" else export_as_image
        try:
            path = await exporter(record, config.EXPORT_DIR)
        except ExportError as e:
            print(f"❌ Export failed: {e}")
            return
        print(f"📄 Saved {path}")

    # ----- loop -----

    async def handle(self, line: str) -> bool:
        """Run one command; False means quit"""
        try:
            parts = shlex.split(line)
        except ValueError as e:
            print(f"❌ {e}")
            return True
        if not parts:
            return True
        command, args = parts[0].lower(), parts[1:]
        try:
            if command in ("quit", "exit", "q"):
                return False
            if command == "help":
                print(HELP)
            elif command == "open" and args:
                self.open_image(" ".join(args))
            elif command == "clear":
                self.intake.clear()
            elif command == "analyze":
                await self.analyze()
            elif command == "history":
                await self.show_history(args[0].lower() if args else "all")
            elif command == "delete" and args:
                await self.delete(args[0])
            elif command == "export" and len(args) == 2:
                await self.export(args[0].lower(), args[1])
            elif command == "signin":
                await self.sign_in()
            elif command == "signup":
                await self.sign_in(create=True)
            elif command == "signout":
                self.session.sign_out()
            else:
                print(HELP)
        except SignInRequired as e:
            print(f"🔒 {e} (type 'signin')")
        except BackendError as e:
            print(f"❌ {e.message}")
        return True

    def close(self) -> None:
        self._unsubscribe()


async def main():
    backend = BackendClient()
    async with SessionContext(backend) as session:
        app = ChartVisionApp(session, backend, AnalysisClient())
        print("📈 Chart Vision - AI Chart Analysis")
        print("=" * 50)
        print("Upload a trading chart for instant AI-powered analysis")
        print(f"Filters: {', '.join(BIAS_FILTERS)}. Type 'help' for commands.\n")
        try:
            while True:
                line = await asyncio.to_thread(input, "> ")
                if not await app.handle(line):
                    print("Goodbye!")
                    break
        except (EOFError, KeyboardInterrupt):
            print("\nGoodbye!")
        finally:
            await app.drain()
            app.close()


def cli():
    asyncio.run(main())


if __name__ == "__main__":
    cli()
