# app.py
"""
Entrypoint da aplicação.

Uso:
  python app.py migrate --db plano.db
  python app.py plano importar plano.xlsx
  python app.py producao atualizar apontamentos.xlsx
  python app.py kpis --material TORCIDA
  python app.py intermediario definir BACON 120
  python app.py relatorio enviar --para 1 --cc 2
"""

from plano.adapters.cli import main

if __name__ == "__main__":
    main()
