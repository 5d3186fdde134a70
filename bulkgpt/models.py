# bulkgpt/models.py
from sqlalchemy import Column, Integer, Text

from bulkgpt.db import Base


class ResponseRecord(Base):
    __tablename__ = "responses"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    gpt_prompt = Column("gptPrompt", Text, nullable=False)
    response = Column(Text, nullable=False)
    # JSON snapshot of the RequestConfig used for the call
    options = Column(Text, nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "gptPrompt": self.gpt_prompt,
            "response": self.response,
            "options": self.options,
        }
