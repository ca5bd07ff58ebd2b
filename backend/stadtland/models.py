from stadtland import db
import json
import time


class SessionRecord(db.Model):
    """One row per live session; the session itself is a JSON document."""
    __tablename__ = 'session_document'
    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(16), unique=True, nullable=False, index=True)
    document = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.Float, nullable=False, default=time.time)
    updated_at = db.Column(db.Float, nullable=False, default=time.time, onupdate=time.time)

    def load(self):
        return json.loads(self.document) if self.document else {}

    def dump(self, doc):
        self.document = json.dumps(doc)
