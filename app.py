# app.py
"""
Entrypoint da aplicação.

Uso:
  python app.py migrate --db atelie.db
  python app.py config show
  python app.py produtos importar produtos.xlsx
  python app.py etapas avancar 12
  python app.py recalcular --todos
  python app.py painel kanban
  python app.py tv
"""

from atelie.adapters.cli import main

if __name__ == "__main__":
    main()
