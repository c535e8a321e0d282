"""Topic and subtopic catalog mapped to arXiv categories."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Subtopic:
    id: str
    label: str
    arxiv_categories: tuple[str, ...]


@dataclass(frozen=True)
class Topic:
    id: str
    label: str
    subtopics: tuple[Subtopic, ...]


def _sub(id: str, label: str, *categories: str) -> Subtopic:
    return Subtopic(id=id, label=label, arxiv_categories=categories)


TOPICS: tuple[Topic, ...] = (
    Topic("ai", "A.I.", (
        _sub("everything", "Everything", "cs.AI", "cs.LG"),
        _sub("llms", "LLMs", "cs.CL"),
        _sub("cv", "CV", "cs.CV"),
        _sub("robotics", "Robotics", "cs.RO"),
        _sub("rl", "RL", "cs.AI"),
        _sub("multimodal", "Multimodal", "cs.MM"),
        _sub("audio-speech", "Audio/Speech", "cs.SD", "eess.AS"),
        _sub("ir", "Information Retrieval", "cs.IR"),
        _sub("neural-arch", "Neural Architecture", "cs.NE"),
        _sub("ml-theory", "ML Theory", "stat.ML"),
    )),
    Topic("cs", "Computer Science", (
        _sub(
            "everything", "Everything",
            "cs.AI", "cs.CL", "cs.CV", "cs.LG", "cs.DS", "cs.DB", "cs.NI",
            "cs.CR", "cs.SE", "cs.DC", "cs.HC", "cs.PL", "cs.CC", "cs.RO",
            "cs.IR", "cs.NE", "cs.MM", "cs.SD", "cs.SI", "cs.GT", "cs.AR",
            "cs.CY", "cs.DL", "cs.FL", "cs.GR", "cs.LO",
        ),
        _sub("algorithms", "Algorithms", "cs.DS"),
        _sub("databases", "Databases", "cs.DB"),
        _sub("networks", "Networks", "cs.NI"),
        _sub("security", "Security", "cs.CR"),
        _sub("se", "Software Eng.", "cs.SE"),
        _sub("distributed", "Distributed Systems", "cs.DC"),
        _sub("hci", "HCI", "cs.HC"),
        _sub("pl", "Programming Languages", "cs.PL"),
        _sub("theory", "Theory", "cs.CC"),
    )),
    Topic("math", "Mathematics", (
        _sub(
            "everything", "Everything",
            "math.AG", "math.RA", "math.AP", "math.CA", "math.FA", "math.CO",
            "math.DG", "math.MG", "math.NT", "math.PR", "math.OC", "math.AT",
            "math.GT", "math.AC", "math.NA", "math.LO", "math.ST", "math.QA",
            "math.RT", "math.DS", "math.SP",
        ),
        _sub("algebra", "Algebra", "math.AG", "math.RA"),
        _sub("analysis", "Analysis", "math.AP", "math.CA", "math.FA"),
        _sub("combinatorics", "Combinatorics", "math.CO"),
        _sub("geometry", "Geometry", "math.DG", "math.MG"),
        _sub("number-theory", "Number Theory", "math.NT"),
        _sub("probability", "Probability", "math.PR"),
        _sub("optimization", "Optimization", "math.OC"),
        _sub("topology", "Topology", "math.AT", "math.GT"),
    )),
    Topic("quant", "Quant. Finance", (
        _sub(
            "everything", "Everything",
            "q-fin.CP", "q-fin.MF", "q-fin.PM", "q-fin.PR", "q-fin.RM",
            "q-fin.TR", "q-fin.EC", "q-fin.GN", "q-fin.ST",
        ),
        _sub("comp-finance", "Comp. Finance", "q-fin.CP"),
        _sub("math-finance", "Mathematical Finance", "q-fin.MF"),
        _sub("portfolio", "Portfolio Mgmt", "q-fin.PM"),
        _sub("pricing", "Pricing", "q-fin.PR"),
        _sub("risk", "Risk Mgmt", "q-fin.RM"),
        _sub("trading", "Trading", "q-fin.TR"),
    )),
    Topic("physics", "Physics", (
        _sub(
            "everything", "Everything",
            "astro-ph", "cond-mat", "hep-ph", "hep-th", "quant-ph", "gr-qc",
            "math-ph", "nucl-th", "nucl-ex", "hep-ex", "hep-lat",
            "physics.comp-ph", "physics.data-an", "physics.gen-ph",
        ),
        _sub("astrophysics", "Astrophysics", "astro-ph"),
        _sub("condensed-matter", "Condensed Matter", "cond-mat"),
        _sub("hep", "HEP", "hep-ph", "hep-th"),
        _sub("quantum", "Quantum", "quant-ph"),
        _sub("stat-mech", "Statistical Mechanics", "cond-mat.stat-mech"),
    )),
    Topic("stat", "Statistics", (
        _sub("everything", "Everything", "stat.AP", "stat.CO", "stat.ME", "stat.ML", "stat.TH", "stat.OT"),
        _sub("applications", "Applications", "stat.AP"),
        _sub("computation", "Computation", "stat.CO"),
        _sub("methodology", "Methodology", "stat.ME"),
        _sub("ml", "ML", "stat.ML"),
        _sub("theory", "Theory", "stat.TH"),
    )),
    Topic("eess", "Elec. Eng.", (
        _sub("everything", "Everything", "eess.AS", "eess.IV", "eess.SP", "eess.SY"),
        _sub("audio-speech", "Audio/Speech", "eess.AS"),
        _sub("image-video", "Image/Video", "eess.IV"),
        _sub("signal", "Signal Processing", "eess.SP"),
        _sub("systems", "Systems", "eess.SY"),
    )),
)


def get_topic(topic_id: str) -> Topic | None:
    return next((t for t in TOPICS if t.id == topic_id), None)


def get_subtopic(topic_id: str, subtopic_id: str) -> Subtopic | None:
    topic = get_topic(topic_id)
    if topic is None:
        return None
    return next((s for s in topic.subtopics if s.id == subtopic_id), None)


def get_arxiv_categories(topic_id: str, subtopic_id: str) -> list[str]:
    sub = get_subtopic(topic_id, subtopic_id)
    return list(sub.arxiv_categories) if sub else []


def is_huggingface_source(topic_id: str, subtopic_id: str) -> bool:
    """The A.I./Everything feed comes from the HuggingFace daily index."""
    return topic_id == "ai" and subtopic_id == "everything"


def get_topic_label(topic_id: str) -> str:
    topic = get_topic(topic_id)
    return topic.label if topic else topic_id


def get_subtopic_label(topic_id: str, subtopic_id: str) -> str:
    sub = get_subtopic(topic_id, subtopic_id)
    return sub.label if sub else subtopic_id
