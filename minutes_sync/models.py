from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


DEFAULT_AGENDA_STATUS = "carry over"


@dataclass
class WorkingDoc:
    title: str
    link: str

    def to_dict(self) -> Dict[str, Any]:
        return {"title": self.title, "link": self.link}


@dataclass
class TimestampedVideo:
    url: str = ""
    intro: str = ""
    timestamps: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"url": self.url, "intro": self.intro, "timestamps": self.timestamps}


@dataclass
class MeetingInfo:
    name: str = ""
    date: str = ""
    host: str = ""
    documenter: str = ""
    translator: str = ""
    people_present: str = ""
    purpose: str = ""
    town_hall_number: str = ""
    google_slides: str = ""
    meeting_video_link: str = ""
    miro_board_link: str = ""
    other_media_link: str = ""
    transcript_link: str = ""
    media_link: str = ""
    working_docs: List[WorkingDoc] = field(default_factory=list)
    timestamped_video: TimestampedVideo = field(default_factory=TimestampedVideo)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "date": self.date,
            "host": self.host,
            "documenter": self.documenter,
            "translator": self.translator,
            "peoplePresent": self.people_present,
            "purpose": self.purpose,
            "townHallNumber": self.town_hall_number,
            "googleSlides": self.google_slides,
            "meetingVideoLink": self.meeting_video_link,
            "miroBoardLink": self.miro_board_link,
            "otherMediaLink": self.other_media_link,
            "transcriptLink": self.transcript_link,
            "mediaLink": self.media_link,
            "workingDocs": [d.to_dict() for d in self.working_docs],
            "timestampedVideo": self.timestamped_video.to_dict(),
        }


@dataclass
class ActionItem:
    text: str
    assignee: str = ""
    status: str = ""
    due_date: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"text": self.text, "assignee": self.assignee}
        # dueDate is omitted, not blanked, when the source has none.
        if self.due_date is not None:
            out["dueDate"] = self.due_date
        out["status"] = self.status
        return out


@dataclass
class DecisionItem:
    decision: str
    rationale: str = ""
    opposing: str = ""
    effect: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "decision": self.decision,
            "rationale": self.rationale,
            "opposing": self.opposing,
            "effect": self.effect,
        }


@dataclass
class AgendaItem:
    agenda: Optional[str] = None
    status: str = DEFAULT_AGENDA_STATUS
    people_present: List[str] = field(default_factory=list)
    facilitator: str = ""
    documenter: str = ""
    discussion_points: List[str] = field(default_factory=list)
    action_items: List[ActionItem] = field(default_factory=list)
    decision_items: List[DecisionItem] = field(default_factory=list)
    town_hall_updates: str = ""
    town_hall_summary: str = ""
    narrative: str = ""
    game_rules: str = ""
    discussion: str = ""
    learning_points: List[str] = field(default_factory=list)
    meeting_topics: List[str] = field(default_factory=list)
    issues: List[str] = field(default_factory=list)
    leaderboard: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.agenda is not None:
            out["agenda"] = self.agenda
        out.update(
            {
                "status": self.status,
                "peoplePresent": list(self.people_present),
                "facilitator": self.facilitator,
                "documenter": self.documenter,
                "discussionPoints": list(self.discussion_points),
                "actionItems": [a.to_dict() for a in self.action_items],
                "decisionItems": [d.to_dict() for d in self.decision_items],
                "townHallUpdates": self.town_hall_updates,
                "townHallSummary": self.town_hall_summary,
                "narrative": self.narrative,
                "gameRules": self.game_rules,
                "discussion": self.discussion,
                "learningPoints": list(self.learning_points),
                "meetingTopics": list(self.meeting_topics),
                "issues": list(self.issues),
                "leaderboard": list(self.leaderboard),
            }
        )
        return out


# Serialized agenda item keys, in declaration order.
AGENDA_ITEM_KEYS = (
    "agenda",
    "status",
    "peoplePresent",
    "facilitator",
    "documenter",
    "discussionPoints",
    "actionItems",
    "decisionItems",
    "townHallUpdates",
    "townHallSummary",
    "narrative",
    "gameRules",
    "discussion",
    "learningPoints",
    "meetingTopics",
    "issues",
    "leaderboard",
)


@dataclass
class Tags:
    topics_covered: str = ""
    emotions: str = ""
    other: str = ""
    games_played: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "topicsCovered": self.topics_covered,
            "emotions": self.emotions,
            "other": self.other,
            "gamesPlayed": self.games_played,
        }


@dataclass
class MeetingRecord:
    workgroup: str = ""
    workgroup_id: str = ""
    meeting_info: MeetingInfo = field(default_factory=MeetingInfo)
    agenda_items: List[AgendaItem] = field(default_factory=list)
    tags: Tags = field(default_factory=Tags)
    type: str = "Custom"
    no_summary_given: bool = False
    canceled_summary: bool = False
    no_summary_given_text: str = ""
    canceled_summary_text: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "workgroup": self.workgroup,
            "workgroup_id": self.workgroup_id,
            "meetingInfo": self.meeting_info.to_dict(),
            "agendaItems": [a.to_dict() for a in self.agenda_items],
            "tags": self.tags.to_dict(),
            "type": self.type,
            "noSummaryGiven": self.no_summary_given,
            "canceledSummary": self.canceled_summary,
            "noSummaryGivenText": self.no_summary_given_text,
            "canceledSummaryText": self.canceled_summary_text,
        }


def unwrap_summary(record: Dict[str, Any]) -> Dict[str, Any]:
    """Canonical rows may nest the record under a `summary` envelope."""

    summary = record.get("summary") if isinstance(record, dict) else None
    return summary if isinstance(summary, dict) else record


def record_workgroup(record: Dict[str, Any]) -> Optional[str]:
    wg = record.get("workgroup")
    if isinstance(wg, str) and wg:
        return wg
    wg = unwrap_summary(record).get("workgroup")
    return wg if isinstance(wg, str) and wg else None


def record_workgroup_id(record: Dict[str, Any]) -> Optional[str]:
    wid = record.get("workgroup_id")
    if isinstance(wid, str) and wid:
        return wid
    wid = unwrap_summary(record).get("workgroup_id")
    return wid if isinstance(wid, str) and wid else None


def record_date(record: Dict[str, Any]) -> Optional[str]:
    for src in (record, unwrap_summary(record)):
        info = src.get("meetingInfo")
        if isinstance(info, dict):
            d = info.get("date")
            if isinstance(d, str) and d:
                return d
    return None
