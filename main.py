# ============================================================
# main.py — Punto de entrada de iso5 desde el repositorio
# ------------------------------------------------------------
# Añade ./src al sys.path ANTES de importar el paquete, así el
# agente corre sin `pip install -e .`; después carga .env y
# cede el control al CLI (por defecto `run`).
#
#   python main.py               -> iso5 run
#   python main.py backtest x.csv
# ============================================================

from pathlib import Path
import sys

PROJECT_ROOT = Path(__file__).parent
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from dotenv import load_dotenv  # noqa: E402

load_dotenv()

from iso5.cli import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main(sys.argv[1:] or ["run"]))
