# app.py
"""
Entrypoint da aplicação.

Uso:
  python app.py migrate --db marcenaria.db
  python app.py usuarios cadastrar "Ana" --papel ADM_MASTER
  python app.py itens importar itens.xlsx -u 1
  python app.py solicitacoes criar 5 --item 1 -u 2
  python app.py solicitacoes aprovar 1 -u 1
  python app.py solicitacoes comprar 1 -u 1
  python app.py rel estoque -u 1
"""

from marcenaria.adapters.cli import main

if __name__ == "__main__":
    main()
