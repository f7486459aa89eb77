import os

from werkzeug.security import generate_password_hash

from academy import create_app
from academy.models import db, User
from academy.progress import level_for

app = create_app()

with app.app_context():
    admin_email = os.getenv("ADMIN_EMAIL", "admin@cybersec-academy.local")
    if User.query.filter_by(email=admin_email).first() is None:
        admin = User(
            username=os.getenv("ADMIN_USERNAME", "admin"),
            email=admin_email,
            password_hash=generate_password_hash(os.getenv("ADMIN_PASSWORD", "change-me-now")),
            role="admin",
            is_admin=True,
            show_on_leaderboard=False,
        )
        db.session.add(admin)
        db.session.commit()
        print("Seeded admin account.")
    else:
        print("Admin account already exists.")

    demo = [("neo", 620), ("trinity", 1800), ("morpheus", 3400)]
    for username, points in demo:
        if User.query.filter_by(username=username).first() is None:
            db.session.add(User(
                username=username,
                email=f"{username}@cybersec-academy.local",
                password_hash=generate_password_hash("demo-password"),
                points=points,
                level=level_for(points),
            ))
    db.session.commit()
    print("Seeded demo learners.")
