"""
Ambulatorio: database locale per la gestione dello studio.

Struttura:
- config.py          : cartella dati, config.json, variabili d'ambiente
- db.py              : Database (engine SQLite, sessioni ORM)
- models.py          : modelli ORM dello schema
- migrations.py      : creazione schema e colonne additive
- schema.py          : metadati tabelle e conversione valori
- select_parser.py   : parser della stringa di select con relazioni annidate
- conditions.py      : filtri e mini-linguaggio OR
- relations.py       : risoluzione delle foreign key
- compiler.py        : descriptor -> SQL parametrico
- relation_fetcher.py: caricamento batch delle relazioni
- query_builder.py   : builder fluente e risultati {data, error, count}
- client.py          : LocalClient (from_, auth)
- auth_*.py          : password e sessione locale
- seed.py            : dati iniziali
- api_main.py        : API FastAPI (/api/db, auth, impostazioni)
- cli.py             : CLI
"""
