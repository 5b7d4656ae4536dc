import pytest

from termophysics import create_app, db
from termophysics.models import Profile


@pytest.fixture
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test",
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'test.db'}",
        "GROQ_API_KEY": None,
    })
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


def register(app, email, role="user", display_name=None):
    """Return a test client logged in as a freshly registered user."""
    client = app.test_client()
    response = client.post("/auth/register", json={
        "email": email,
        "password": "secret-pass",
        "role": role,
        "display_name": display_name or email.split("@")[0].title(),
    })
    assert response.status_code == 201, response.get_json()
    return client


@pytest.fixture
def teacher(app):
    return register(app, "curie@school.edu", role="teacher", display_name="Marie Curie")


@pytest.fixture
def student(app):
    return register(app, "ada@school.edu", display_name="Ada")


@pytest.fixture
def other_student(app):
    return register(app, "alan@school.edu", display_name="Alan")


@pytest.fixture
def classroom(teacher, student):
    response = teacher.post("/classrooms", json={"name": "Thermodynamics 101", "subject": "Physics"})
    assert response.status_code == 201
    data = response.get_json()
    joined = student.post("/classrooms/join", json={"class_code": data["class_code"]})
    assert joined.status_code == 201
    return data


def profile_id(email):
    return Profile.query.filter_by(email=email).first().id
