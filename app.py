# app.py
"""
Entrypoint da aplicação.

Uso:
  python app.py migrate --db almoxarifado.db
  python app.py usuarios init-admin --email admin@prefeitura.gov.br --senha segredo
  python app.py entrada --codigo 789 --nome "Papel A4" --quantidade 10 --validade 31/12/2026
  python app.py saida --codigo 789 --quantidade 2 --setor PSF
  python app.py dashboard
"""

from almoxarifado.adapters.cli import main

if __name__ == "__main__":
    main()
