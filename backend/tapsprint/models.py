from datetime import datetime, timezone

from flask_login import UserMixin

from tapsprint import db

ROLES = ('anonymous', 'player', 'admin')


def _utcnow():
    return datetime.now(timezone.utc)


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    role = db.Column(db.String(16), nullable=False, default='player')
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'role': self.role,
        }


class SprintResult(db.Model):
    """One player's tally for one finished sprint session. Written once."""
    __tablename__ = 'sprint_result'
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.String(64), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    display_name = db.Column(db.String(64), nullable=True)
    tap_count = db.Column(db.Integer, nullable=False)
    rank = db.Column(db.Integer, nullable=True)
    recorded_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)

    user = db.relationship('User')

    def to_dict(self):
        return {
            'id': self.id,
            'session_id': self.session_id,
            'user_id': self.user_id,
            'username': self.user.username if self.user else None,
            'display_name': self.display_name,
            'tap_count': self.tap_count,
            'rank': self.rank,
            'recorded_at': self.recorded_at.isoformat() if self.recorded_at else None,
        }
