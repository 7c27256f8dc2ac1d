from shopledger.extensions import db


def reload(model, pk):
    """Fetch a fresh copy bypassing the identity map."""
    return db.session.get(model, pk, populate_existing=True)


def user_headers(user):
    return {"X-User-Id": str(user.id)}
