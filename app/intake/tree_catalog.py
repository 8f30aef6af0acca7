# app/intake/tree_catalog.py
"""
Hand-authored complaint trees, one per TreeKey.

Answer ids are shared across trees (onset, quality, radiation, severity,
duration, timing, associated, worsened_by, relieved_by) so the findings
builder can read any tree the same way. Option values use the vocabulary
of the decision rules ('suddenly', 'crushing', 'left-arm' ...).
"""
from __future__ import annotations

from typing import Any, Sequence, Tuple

from app.intake.schema import RedFlagAction, RedFlagSeverity
from app.intake.stages import TreeKey
from app.intake.trees import (
    ComplaintTree,
    ComplaintTreeRegistry,
    ConditionalQuestion,
    Question,
    QuestionOption,
    RedFlagCheck,
    ResponseType,
    ValidationRule,
)
from app.records import LocalizedText as T

STOP = RedFlagAction.STOP_INTAKE
ESCALATE = RedFlagAction.ESCALATE
CRITICAL = RedFlagSeverity.CRITICAL
HIGH = RedFlagSeverity.HIGH


def none_is_exclusive(value: Any) -> bool:
    values = list(value) if isinstance(value, (list, tuple)) else [value]
    return not ("none" in values and len(values) > 1)


NONE_EXCLUSIVE = ValidationRule(
    error_message=T(
        en="'None' cannot be combined with other choices.",
        ur="'کوئی نہیں' کو دوسرے انتخاب کے ساتھ نہیں ملایا جا سکتا۔",
    ),
    custom=none_is_exclusive,
)


def _options(*pairs: Tuple[str, str]) -> Tuple[QuestionOption, ...]:
    return tuple(QuestionOption(value=v, label=T(en=label)) for v, label in pairs)


def _single(qid: str, prompt: T, *pairs: Tuple[str, str], required: bool = True) -> Question:
    return Question(qid, prompt, ResponseType.SINGLE_CHOICE, _options(*pairs), required=required)


def _multi(qid: str, prompt: T, *pairs: Tuple[str, str], required: bool = True) -> Question:
    has_none = any(v == "none" for v, _ in pairs)
    return Question(
        qid,
        prompt,
        ResponseType.MULTI_SELECT,
        _options(*pairs),
        validation=NONE_EXCLUSIVE if has_none else None,
        required=required,
    )


def onset() -> Question:
    return _single(
        "onset",
        T(en="How did it start?", ur="یہ کیسے شروع ہوا؟"),
        ("suddenly", "Suddenly (seconds to minutes)"),
        ("gradually", "Gradually (over hours or days)"),
        ("after-trauma", "After an injury or fall"),
    )


def severity(prompt: T | None = None) -> Question:
    return Question(
        "severity",
        prompt or T(
            en="On a scale of 1-10, how severe is it? (10 = worst imaginable)",
            ur="1 سے 10 کے پیمانے پر یہ کتنا شدید ہے؟",
        ),
        ResponseType.SEVERITY_SCALE,
        validation=ValidationRule(
            min=1,
            max=10,
            error_message=T(en="Please choose a number from 1 to 10.", ur="براہ کرم 1 سے 10 تک کا عدد منتخب کریں۔"),
        ),
    )


def duration() -> Question:
    return Question(
        "duration",
        T(en="How long have you had it?", ur="یہ کب سے ہے؟"),
        ResponseType.DURATION,
        _options(
            ("lt-1-hour", "Less than an hour"),
            ("1-24-hours", "1-24 hours"),
            ("1-7-days", "1-7 days"),
            ("1-4-weeks", "1-4 weeks"),
            ("gt-1-month", "More than a month"),
        ),
    )


def associated(*pairs: Tuple[str, str]) -> Question:
    return _multi(
        "associated",
        T(en="Are you experiencing any of these?", ur="کیا آپ کو ان میں سے کچھ محسوس ہو رہا ہے؟"),
        ("none", "None of these"),
        *pairs,
    )


def flag(
    check_id: str,
    en: str,
    ur: str,
    severity_: RedFlagSeverity,
    action: RedFlagAction,
    alert: str,
    symptom: str | None = None,
) -> RedFlagCheck:
    return RedFlagCheck(
        id=check_id,
        prompt=T(en=en, ur=ur),
        severity=severity_,
        action=action,
        alert=alert,
        symptom=symptom,
    )


def answered(qid: str, *values: str):
    """Condition: answer to ``qid`` equals, or (multi-select) contains, any of ``values``."""

    def condition(answers) -> bool:
        value = answers.get(qid)
        if isinstance(value, (list, tuple)):
            return any(v in value for v in values)
        return value in values

    return condition


# ----------------------------------------------------------------------
# Trees
# ----------------------------------------------------------------------

CHEST_PAIN_TREE = ComplaintTree(
    key=TreeKey.CHEST_PAIN,
    display_name=T(en="Chest Pain", ur="سینے میں درد"),
    urgency="high",
    red_flags=(
        flag(
            "chest_syncope",
            "Have you fainted or felt like you were going to faint?",
            "کیا آپ بے ہوش ہوئے یا بے ہوش ہونے کا احساس ہوا؟",
            CRITICAL, STOP, "Syncope with chest pain", "loss-of-consciousness",
        ),
        flag(
            "chest_sweating",
            "Are you sweating excessively (cold sweat)?",
            "کیا آپ کو بہت زیادہ پسینہ آ رہا ہے؟",
            HIGH, ESCALATE, "Diaphoresis with chest pain", "diaphoresis",
        ),
        flag(
            "chest_breathing_worse",
            "Is your breathing getting worse with the pain?",
            "کیا درد کے ساتھ سانس لینا مشکل ہو رہا ہے؟",
            HIGH, ESCALATE, "Dyspnea with chest pain", "difficulty-breathing",
        ),
    ),
    mandatory_questions=(
        onset(),
        _multi(
            "quality",
            T(en="How would you describe the pain?", ur="آپ درد کو کیسے بیان کریں گے؟"),
            ("sharp", "Sharp/stabbing"),
            ("crushing", "Crushing/squeezing"),
            ("pressure", "Pressure/heaviness"),
            ("burning", "Burning"),
            ("dull", "Dull/aching"),
            ("tearing", "Tearing"),
        ),
        _multi(
            "radiation",
            T(en="Does the pain spread to other areas?", ur="کیا درد دوسرے حصوں میں پھیلتا ہے؟"),
            ("none", "No, it stays in one place"),
            ("left-arm", "Left arm"),
            ("right-arm", "Right arm"),
            ("jaw", "Jaw"),
            ("back", "Back"),
            ("neck", "Neck"),
            ("abdomen", "Abdomen"),
        ),
        severity(),
        duration(),
        _single(
            "timing",
            T(en="When does the pain typically occur?", ur="درد عام طور پر کب ہوتا ہے؟"),
            ("with-exertion", "With physical exertion/exercise"),
            ("at-rest", "At rest"),
            ("after-meals", "After eating"),
            ("worse-with-breathing", "When breathing deeply"),
            ("worse-with-movement", "When moving or pressing on the chest"),
            ("no-pattern", "No clear pattern"),
        ),
        associated(
            ("shortness-of-breath", "Shortness of breath"),
            ("nausea", "Nausea"),
            ("dizziness", "Dizziness"),
            ("palpitations", "Racing or irregular heartbeat"),
            ("cough", "Cough"),
            ("fever", "Fever"),
        ),
        _multi(
            "worsened_by",
            T(en="Does anything make the pain worse?", ur="کیا کوئی چیز درد کو بدتر بناتی ہے؟"),
            ("none", "Nothing makes it worse"),
            ("deep-breathing", "Deep breathing"),
            ("coughing", "Coughing"),
            ("movement", "Movement"),
            ("exertion", "Exertion"),
            required=False,
        ),
    ),
    conditional_questions=(
        ConditionalQuestion(
            "relieved_by",
            T(en="Does anything make the pain better?", ur="کیا کوئی چیز درد کو بہتر بناتی ہے؟"),
            ResponseType.MULTI_SELECT,
            _options(
                ("none", "Nothing helps"),
                ("rest", "Rest"),
                ("nitroglycerin", "Nitroglycerin"),
                ("antacids", "Antacids"),
                ("changing-position", "Changing position"),
            ),
            validation=NONE_EXCLUSIVE,
            condition=answered("timing", "with-exertion"),
        ),
    ),
    minimum_questions_required=10,
    estimated_minutes=4,
)

HEADACHE_TREE = ComplaintTree(
    key=TreeKey.HEADACHE,
    display_name=T(en="Headache", ur="سر درد"),
    urgency="medium",
    red_flags=(
        flag(
            "headache_fever",
            "Do you have a fever with this headache?",
            "کیا سر درد کے ساتھ بخار ہے؟",
            HIGH, ESCALATE, "Headache with fever", "fever",
        ),
        flag(
            "headache_neck_stiffness",
            "Is your neck stiff or painful to bend forward?",
            "کیا آپ کی گردن اکڑی ہوئی ہے؟",
            HIGH, ESCALATE, "Neck stiffness", "neck-stiffness",
        ),
        flag(
            "headache_weakness_speech",
            "Any new weakness, numbness or trouble speaking?",
            "کیا کوئی نئی کمزوری، سن ہونا یا بولنے میں دشواری ہے؟",
            CRITICAL, STOP, "Focal neurological deficit with headache", "speech-problems",
        ),
    ),
    mandatory_questions=(
        onset(),
        _multi(
            "quality",
            T(en="What does the headache feel like?", ur="سر درد کیسا محسوس ہوتا ہے؟"),
            ("throbbing", "Throbbing/pulsating"),
            ("pressure", "Pressure"),
            ("tight-band", "Tight band around the head"),
            ("sharp", "Sharp/stabbing"),
            ("dull", "Dull"),
            ("worst-of-life", "Worst headache of my life"),
        ),
        severity(),
        duration(),
        _single(
            "timing",
            T(en="Is it constant or does it come and go?", ur="کیا یہ مسلسل ہے یا آتا جاتا ہے؟"),
            ("constant", "Constant"),
            ("comes-and-goes", "Comes and goes"),
            ("mornings", "Worse in the morning"),
            ("evenings", "Worse in the evening"),
        ),
        associated(
            ("nausea", "Nausea"),
            ("vomiting", "Vomiting"),
            ("photophobia", "Light bothers me"),
            ("phonophobia", "Sound bothers me"),
            ("eye-watering", "Watery eye on the painful side"),
            ("visual-changes", "Vision changes"),
            ("confusion", "Confusion"),
        ),
        _multi(
            "relieved_by",
            T(en="What makes it better?", ur="کس چیز سے بہتر ہوتا ہے؟"),
            ("none", "Nothing helps"),
            ("rest", "Rest"),
            ("dark-room", "Dark, quiet room"),
            ("medication", "Pain medication"),
            required=False,
        ),
    ),
    conditional_questions=(
        ConditionalQuestion(
            "head_injury_loc",
            T(en="Did you lose consciousness after the injury?", ur="کیا چوٹ کے بعد آپ بے ہوش ہوئے؟"),
            ResponseType.YES_NO,
            condition=answered("onset", "after-trauma"),
        ),
    ),
    minimum_questions_required=9,
    estimated_minutes=4,
)

ABDOMINAL_PAIN_TREE = ComplaintTree(
    key=TreeKey.ABDOMINAL_PAIN,
    display_name=T(en="Abdominal Pain", ur="پیٹ میں درد"),
    urgency="medium",
    red_flags=(
        flag(
            "abdomen_vomiting_blood",
            "Have you vomited blood or material that looks like coffee grounds?",
            "کیا آپ نے خون کی قے کی ہے؟",
            HIGH, ESCALATE, "Hematemesis", "vomiting-blood",
        ),
        flag(
            "abdomen_blood_in_stool",
            "Have you noticed blood in your stool or black, tarry stool?",
            "کیا آپ کے پاخانے میں خون ہے؟",
            HIGH, ESCALATE, "Blood in stool", "blood-in-stool",
        ),
        flag(
            "abdomen_rigid",
            "Is your belly hard like a board and too painful to touch?",
            "کیا آپ کا پیٹ سخت ہے اور چھونے میں بہت درد ہوتا ہے؟",
            CRITICAL, STOP, "Rigid abdomen", "rigid-abdomen",
        ),
    ),
    mandatory_questions=(
        onset(),
        _multi(
            "quality",
            T(en="What does the pain feel like?", ur="درد کیسا محسوس ہوتا ہے؟"),
            ("cramping", "Cramping"),
            ("sharp", "Sharp"),
            ("dull", "Dull/aching"),
            ("burning", "Burning"),
            ("colicky", "Comes in waves"),
            ("boring", "Boring through to the back"),
        ),
        _multi(
            "radiation",
            T(en="Does the pain spread anywhere?", ur="کیا درد کہیں اور پھیلتا ہے؟"),
            ("none", "No"),
            ("back", "Back"),
            ("groin", "Groin"),
            ("shoulder", "Shoulder"),
            ("chest", "Chest"),
        ),
        severity(),
        duration(),
        _single(
            "timing",
            T(en="When is it worst?", ur="یہ کب سب سے زیادہ ہوتا ہے؟"),
            ("after-meals", "After eating"),
            ("constant", "Constant"),
            ("comes-and-goes", "Comes and goes"),
            ("at-night", "At night"),
        ),
        associated(
            ("nausea", "Nausea"),
            ("vomiting", "Vomiting"),
            ("diarrhea", "Diarrhea"),
            ("constipation", "Constipation"),
            ("fever", "Fever"),
            ("loss-of-appetite", "Loss of appetite"),
        ),
    ),
    minimum_questions_required=10,
    estimated_minutes=5,
)

BACK_PAIN_TREE = ComplaintTree(
    key=TreeKey.BACK_PAIN,
    display_name=T(en="Back Pain", ur="کمر درد"),
    urgency="low",
    red_flags=(
        flag(
            "back_bowel_bladder",
            "Any new loss of control of your bladder or bowels?",
            "کیا پیشاب یا پاخانے پر قابو ختم ہو گیا ہے؟",
            CRITICAL, ESCALATE, "Bowel or bladder dysfunction", "bowel-bladder-dysfunction",
        ),
        flag(
            "back_saddle_anesthesia",
            "Any numbness between your legs or around your bottom?",
            "کیا ٹانگوں کے درمیان سن ہونا محسوس ہوتا ہے؟",
            CRITICAL, ESCALATE, "Saddle anesthesia", "saddle-anesthesia",
        ),
        flag(
            "back_progressive_weakness",
            "Are your legs getting weaker?",
            "کیا آپ کی ٹانگیں کمزور ہو رہی ہیں؟",
            HIGH, ESCALATE, "Progressive leg weakness", "progressive-weakness",
        ),
    ),
    mandatory_questions=(
        onset(),
        _multi(
            "quality",
            T(en="What does the pain feel like?", ur="درد کیسا محسوس ہوتا ہے؟"),
            ("sharp", "Sharp"),
            ("dull", "Dull/aching"),
            ("burning", "Burning"),
            ("shooting", "Shooting"),
            ("colicky", "Comes in waves"),
            ("stiffness", "Stiffness"),
        ),
        _multi(
            "radiation",
            T(en="Does the pain spread anywhere?", ur="کیا درد کہیں اور پھیلتا ہے؟"),
            ("none", "No"),
            ("buttock", "Buttock"),
            ("leg", "Down the leg"),
            ("groin", "Groin"),
            ("abdomen", "Abdomen"),
        ),
        severity(),
        duration(),
        _multi(
            "worsened_by",
            T(en="What makes it worse?", ur="کس چیز سے بدتر ہوتا ہے؟"),
            ("none", "Nothing in particular"),
            ("movement", "Movement"),
            ("sitting", "Sitting"),
            ("bending", "Bending"),
            ("lying-down", "Lying down"),
        ),
        associated(
            ("numbness", "Numbness"),
            ("tingling", "Tingling"),
            ("fever", "Fever"),
            ("weight-loss", "Unexplained weight loss"),
            ("urinary-pain", "Pain when passing urine"),
        ),
    ),
    minimum_questions_required=10,
    estimated_minutes=4,
)

PELVIC_PAIN_TREE = ComplaintTree(
    key=TreeKey.PELVIC_PAIN,
    display_name=T(en="Pelvic Pain", ur="پیڑو میں درد"),
    urgency="medium",
    red_flags=(
        flag(
            "pelvic_pregnancy_bleeding",
            "Could you be pregnant and are you bleeding?",
            "کیا آپ حاملہ ہو سکتی ہیں اور خون آ رہا ہے؟",
            CRITICAL, STOP, "Bleeding in possible pregnancy", "pregnancy-bleeding",
        ),
        flag(
            "pelvic_fever",
            "Do you have a fever or chills?",
            "کیا آپ کو بخار یا کپکپی ہے؟",
            HIGH, ESCALATE, "Pelvic pain with fever", "fever",
        ),
    ),
    mandatory_questions=(
        onset(),
        _multi(
            "quality",
            T(en="What does the pain feel like?", ur="درد کیسا محسوس ہوتا ہے؟"),
            ("cramping", "Cramping"),
            ("sharp", "Sharp"),
            ("dull", "Dull/aching"),
            ("burning", "Burning"),
        ),
        severity(),
        duration(),
        _single(
            "timing",
            T(en="When does it happen?", ur="یہ کب ہوتا ہے؟"),
            ("with-urination", "When passing urine"),
            ("with-periods", "With periods"),
            ("constant", "Constant"),
            ("comes-and-goes", "Comes and goes"),
        ),
        associated(
            ("urinary-pain", "Pain or burning passing urine"),
            ("urinary-frequency", "Passing urine often"),
            ("discharge", "Unusual discharge"),
            ("nausea", "Nausea"),
        ),
    ),
    minimum_questions_required=8,
    estimated_minutes=4,
)

LIMB_PAIN_TREE = ComplaintTree(
    key=TreeKey.LIMB_PAIN,
    display_name=T(en="Limb Pain", ur="بازو یا ٹانگ میں درد"),
    urgency="low",
    red_flags=(
        flag(
            "limb_cannot_bear_weight",
            "Are you unable to move it or put weight on it?",
            "کیا آپ اسے ہلا یا اس پر وزن نہیں ڈال سکتے؟",
            HIGH, ESCALATE, "Unable to bear weight", "cannot-bear-weight",
        ),
        flag(
            "limb_vascular",
            "Is the limb cold, pale or blue?",
            "کیا بازو یا ٹانگ ٹھنڈی، پیلی یا نیلی ہے؟",
            CRITICAL, STOP, "Possible vascular compromise", "vascular-compromise",
        ),
        flag(
            "limb_deformity",
            "Does the limb look bent or out of shape?",
            "کیا بازو یا ٹانگ ٹیڑھی نظر آتی ہے؟",
            HIGH, ESCALATE, "Visible deformity", "deformity",
        ),
    ),
    mandatory_questions=(
        onset(),
        _multi(
            "quality",
            T(en="What does the pain feel like?", ur="درد کیسا محسوس ہوتا ہے؟"),
            ("sharp", "Sharp"),
            ("dull", "Dull/aching"),
            ("throbbing", "Throbbing"),
            ("burning", "Burning"),
            ("tingling", "Tingling"),
        ),
        severity(),
        duration(),
        _multi(
            "worsened_by",
            T(en="What makes it worse?", ur="کس چیز سے بدتر ہوتا ہے؟"),
            ("none", "Nothing in particular"),
            ("movement", "Movement"),
            ("weight-bearing", "Putting weight on it"),
            ("rest", "Rest"),
        ),
        associated(
            ("swelling", "Swelling"),
            ("redness", "Redness or warmth"),
            ("bruising", "Bruising"),
            ("stiffness", "Stiffness"),
            ("numbness", "Numbness"),
        ),
    ),
    conditional_questions=(
        ConditionalQuestion(
            "injury_mechanism",
            T(en="How did the injury happen?", ur="چوٹ کیسے لگی؟"),
            ResponseType.FREE_TEXT,
            validation=ValidationRule(
                pattern=r"\S",
                error_message=T(en="Please describe how it happened.", ur="براہ کرم بتائیں یہ کیسے ہوا۔"),
            ),
            condition=answered("onset", "after-trauma"),
        ),
    ),
    minimum_questions_required=9,
    estimated_minutes=3,
)

RESPIRATORY_TREE = ComplaintTree(
    key=TreeKey.RESPIRATORY,
    display_name=T(en="Breathing Problems", ur="سانس کے مسائل"),
    urgency="high",
    red_flags=(
        flag(
            "resp_cyanosis",
            "Are your lips or fingertips turning blue?",
            "کیا آپ کے ہونٹ یا انگلیاں نیلی ہو رہی ہیں؟",
            CRITICAL, STOP, "Cyanosis", "cyanosis",
        ),
        flag(
            "resp_coughing_blood",
            "Are you coughing up blood?",
            "کیا کھانسی میں خون آ رہا ہے؟",
            HIGH, ESCALATE, "Hemoptysis", "coughing-blood",
        ),
        flag(
            "resp_cannot_speak",
            "Are you too breathless to speak in full sentences?",
            "کیا سانس پھولنے کی وجہ سے پورا جملہ نہیں بول پا رہے؟",
            CRITICAL, STOP, "Severe respiratory distress", "difficulty-breathing",
        ),
    ),
    mandatory_questions=(
        onset(),
        severity(T(en="How bad is your breathing problem from 1-10?", ur="1 سے 10 تک سانس کا مسئلہ کتنا شدید ہے؟")),
        duration(),
        _single(
            "cough_type",
            T(en="Do you have a cough?", ur="کیا آپ کو کھانسی ہے؟"),
            ("none", "No cough"),
            ("dry", "Dry cough"),
            ("productive", "Cough with phlegm"),
        ),
        _single(
            "timing",
            T(en="When is it worst?", ur="یہ کب سب سے زیادہ ہوتا ہے؟"),
            ("at-rest", "At rest"),
            ("with-exertion", "With exertion"),
            ("at-night", "At night"),
            ("lying-down", "Lying flat"),
        ),
        associated(
            ("fever", "Fever"),
            ("wheezing", "Wheezing"),
            ("chest-tightness", "Chest tightness"),
            ("shortness-of-breath", "Shortness of breath"),
            ("sore-throat", "Sore throat"),
        ),
    ),
    minimum_questions_required=9,
    estimated_minutes=4,
)

GENERAL_TREE = ComplaintTree(
    key=TreeKey.GENERAL,
    display_name=T(en="General Assessment", ur="عمومی معائنہ"),
    urgency="low",
    red_flags=(
        flag(
            "general_rash",
            "Do you have a rash that does not fade when you press a glass on it?",
            "کیا آپ کو ایسے دانے ہیں جو گلاس سے دبانے پر ختم نہیں ہوتے؟",
            CRITICAL, STOP, "Non-blanching rash", "non-blanching-rash",
        ),
        flag(
            "general_confusion",
            "Are you (or is the patient) confused or unusually drowsy?",
            "کیا مریض الجھن یا غیر معمولی غنودگی میں ہے؟",
            HIGH, ESCALATE, "Altered mental status", "confusion",
        ),
    ),
    mandatory_questions=(
        onset(),
        severity(T(en="How unwell do you feel from 1-10?", ur="1 سے 10 تک آپ کتنا بیمار محسوس کرتے ہیں؟")),
        duration(),
        Question(
            "measured_temperature",
            T(en="Have you measured your temperature?", ur="کیا آپ نے اپنا درجہ حرارت ناپا ہے؟"),
            ResponseType.YES_NO,
        ),
        associated(
            ("fever", "Fever"),
            ("chills", "Chills"),
            ("body-aches", "Body aches"),
            ("cough", "Cough"),
            ("rash", "Rash"),
            ("vomiting", "Vomiting"),
            ("diarrhea", "Diarrhea"),
            ("fatigue", "Tiredness"),
            ("dizziness", "Dizziness"),
        ),
        Question(
            "description",
            T(en="Anything else you want the doctor to know?", ur="کچھ اور جو آپ ڈاکٹر کو بتانا چاہتے ہیں؟"),
            ResponseType.FREE_TEXT,
            validation=ValidationRule(
                pattern=r"^[\s\S]{1,500}$",
                error_message=T(en="Please keep it under 500 characters.", ur="براہ کرم 500 حروف سے کم لکھیں۔"),
            ),
            required=False,
        ),
    ),
    conditional_questions=(
        ConditionalQuestion(
            "temperature",
            T(en="What was the highest temperature (in °C)?", ur="سب سے زیادہ درجہ حرارت کتنا تھا (°C)؟"),
            ResponseType.NUMERIC,
            validation=ValidationRule(
                min=34,
                max=43,
                error_message=T(
                    en="Temperature must be between 34 and 43 °C.",
                    ur="درجہ حرارت 34 اور 43 کے درمیان ہونا چاہیے۔",
                ),
            ),
            condition=lambda answers: answers.get("measured_temperature") is True,
        ),
    ),
    minimum_questions_required=7,
    estimated_minutes=3,
)


ALL_TREES: Sequence[ComplaintTree] = (
    CHEST_PAIN_TREE,
    HEADACHE_TREE,
    ABDOMINAL_PAIN_TREE,
    BACK_PAIN_TREE,
    PELVIC_PAIN_TREE,
    LIMB_PAIN_TREE,
    RESPIRATORY_TREE,
    GENERAL_TREE,
)


def default_registry() -> ComplaintTreeRegistry:
    return ComplaintTreeRegistry(ALL_TREES)
