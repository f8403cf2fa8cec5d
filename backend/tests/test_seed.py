import importlib.util
from pathlib import Path

from sqlmodel import select

from campus import models

_SEED = Path(__file__).resolve().parents[1] / 'scripts' / 'seed.py'


def _load_seed():
    spec = importlib.util.spec_from_file_location('campus_seed', _SEED)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_seed_is_idempotent(session, client):
    seed = _load_seed()
    seed.main('root@example.com', 'R00tPassword', demo=True)
    seed.main('root@example.com', 'R00tPassword', demo=True)

    admins = session.exec(select(models.User).where(models.User.role == models.Role.ADMIN)).all()
    assert [a.email for a in admins] == ['root@example.com']
    assert len(session.exec(select(models.Course)).all()) == 1
    assert len(session.exec(select(models.AcademicTerm)).all()) == 1

    r = client.post('/api/auth/login', json={'email': 'root@example.com', 'password': 'R00tPassword'})
    assert r.status_code == 200
    assert r.json()['data']['user']['role'] == 'admin'
