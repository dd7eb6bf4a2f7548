"""PL-600 Exam Prep — practice quiz and scored exam simulator."""
import logging
import sys
from pathlib import Path

# Ensure project root is in path
project_root = Path(__file__).resolve().parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import streamlit as st

from engine import PASSING_SCORE, PRACTICE_COUNT_CHOICES
from importer import load_question_bank
from examprep.config import get_settings
from examprep.engine import QuizApp, SessionState
from examprep.errors import EmptySelectionError
from examprep.mastery import MasteryTracker
from examprep.models import HintLevel, QuizMode, category_weight_label
from examprep.storage import build_history_store
from examprep.utils import format_time

settings = get_settings()
logging.basicConfig(level=settings.log_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")


@st.cache_resource
def get_question_bank():
    questions, diagnostics = load_question_bank(settings.question_bank_path)
    return questions, len(diagnostics)


@st.cache_resource
def get_mastery_tracker() -> MasteryTracker:
    return MasteryTracker(build_history_store(settings))


st.set_page_config(page_title="PL-600 Exam Prep", layout="centered")
st.sidebar.title("PL-600 Exam Prep")

try:
    bank, dropped = get_question_bank()
except (FileNotFoundError, ValueError) as e:
    st.error(f"Could not load the question bank. Check QUESTION_BANK_PATH in .env. {e}")
    st.stop()

if "quiz" not in st.session_state:
    st.session_state["quiz"] = QuizApp(bank, get_mastery_tracker())
quiz: QuizApp = st.session_state["quiz"]

stats = quiz.mastery.aggregate_stats(q.id for q in quiz.all_questions)
st.sidebar.metric("Questions", stats.total)
st.sidebar.caption(f"Mastered {stats.mastered} · Learning {stats.learning} · "
                   f"Needs practice {stats.weak} · New {stats.unseen}")
if dropped:
    st.sidebar.caption(f"{dropped} invalid questions skipped")


def render_setup():
    st.header("Start a session")
    mode = st.radio(
        "Mode",
        [QuizMode.PRACTICE.value, QuizMode.TEST.value],
        index=0 if quiz.mode == QuizMode.PRACTICE else 1,
        format_func=lambda m: "Practice (instant feedback, hints)" if m == "practice" else "Exam simulation (40-60 questions, scaled score)",
    )
    quiz.set_mode(mode)

    st.subheader("Categories")
    st.caption("Leave all unchecked to include every category.")
    for category in quiz.categories():
        checked = st.checkbox(
            f"{category} ({category_weight_label(category)})",
            value=category in quiz.selected_categories,
            key=f"cat_{category}",
        )
        if checked != (category in quiz.selected_categories):
            quiz.toggle_category(category)

    if quiz.mode == QuizMode.PRACTICE:
        count = st.selectbox(
            "Number of questions",
            PRACTICE_COUNT_CHOICES,
            index=PRACTICE_COUNT_CHOICES.index(quiz.question_count) if quiz.question_count in PRACTICE_COUNT_CHOICES else 1,
            format_func=lambda c: "All questions" if c == "all" else f"{c} questions",
        )
        quiz.set_question_count(count)

    if st.button(f"Start {'Exam' if quiz.mode == QuizMode.TEST else 'Quiz'}", type="primary", use_container_width=True):
        try:
            quiz.start()
            st.rerun()
        except EmptySelectionError as e:
            st.warning(str(e))


def render_question():
    session = quiz.session
    question = quiz.current_question()
    st.caption(f"Question {session.position + 1} of {len(session.questions)}")
    if quiz.mode == QuizMode.TEST:
        progress = quiz.progress()
        st.sidebar.metric("Elapsed", format_time(progress["time_elapsed_sec"]))
        st.sidebar.progress(progress["questions_answered"] / progress["total_questions"])

    col1, col2 = st.columns([3, 1])
    col1.markdown(f"`{question.category}`")
    if quiz.mode == QuizMode.PRACTICE:
        col2.markdown(f"**{quiz.mastery.classify(question.id).label}**")
    st.markdown(f"### {question.text}")

    if quiz.hints_available():
        if st.button("Hide hints" if quiz.show_hints else "Show hints"):
            quiz.toggle_hints()
            st.rerun()
        if quiz.show_hints:
            level = st.selectbox(
                "Hint level",
                [h.value for h in HintLevel],
                index=[h.value for h in HintLevel].index(quiz.hint_level.value),
            )
            quiz.set_hint_level(level)
            st.info(quiz.current_hint())
            if question.key_words:
                st.caption("Key words: " + ", ".join(question.key_words))

    answer = quiz.answer_for(question.id) or ([] if question.is_multiple_choice else None)
    revealed = quiz.is_answered
    for option in question.options:
        selected = option.letter in answer if question.is_multiple_choice else answer == option.letter
        marker = ""
        if revealed and option.letter in question.correct_answers:
            marker = " ✅"
        elif revealed and selected:
            marker = " ❌"
        label = f"{'☑' if selected else '☐'} {option.letter}. {option.text}{marker}"
        if st.button(label, key=f"opt_{session.position}_{option.letter}", disabled=revealed, use_container_width=True):
            quiz.select_answer(question.id, option.letter)
            st.rerun()

    if revealed:
        outcome = session.outcome_at(session.position)
        (st.success if outcome else st.error)("Correct!" if outcome else "Incorrect")
        st.write(question.explanation or "No explanation available")
        if question.concepts_tested:
            st.caption("Concepts tested: " + ", ".join(question.concepts_tested))
        if question.reference:
            st.markdown(f"[Reference]({question.reference})")

    history = quiz.mastery.get(question.id)
    if quiz.mode == QuizMode.PRACTICE and history and history.attempts > 0:
        st.caption(f"Previous attempts: {history.attempts} · Success rate: {quiz.mastery.success_rate(question.id)}% · "
                   f"Retention score: {history.retention_score}%")

    last = session.position == len(session.questions) - 1
    col1, col2, col3 = st.columns(3)
    with col1:
        if st.button("Previous", disabled=session.position == 0):
            quiz.prev()
            st.rerun()
    with col2:
        if quiz.mode == QuizMode.PRACTICE and not revealed and quiz.state == SessionState.RUNNING:
            if st.button("Check Answer", type="primary", disabled=not quiz.can_check_answer()):
                quiz.check_answer()
                st.rerun()
    with col3:
        if revealed or quiz.mode == QuizMode.TEST:
            if st.button("Finish" if last else "Next", type="primary"):
                quiz.next()
                st.rerun()


def render_results():
    report = quiz.report
    if report.mode == QuizMode.TEST:
        st.header("Exam Complete!")
        st.metric("Scaled Score (out of 1000)", report.scaled_score)
        (st.success if report.passed else st.error)(
            f"{'PASS' if report.passed else 'FAIL'} · Passing Score: {PASSING_SCORE} | Your Score: {report.scaled_score}"
        )
        st.caption(f"Time: {format_time(report.duration_seconds)}")
        st.write(f"Raw Score: {report.correct_count} out of {report.total_questions} ({report.raw_percentage}%)")
    else:
        st.header("Practice Complete!")
        st.metric("Score", f"{report.raw_percentage}%")
        st.write(f"You got {report.correct_count} out of {report.total_questions} questions correct")

    st.subheader("Score by Category")
    for cat in report.categories:
        st.write(f"{cat.category}: {cat.correct}/{cat.total} ({cat.percentage}%)")
        st.progress(cat.percentage / 100)

    if report.mastery is not None:
        st.subheader("Overall Progress")
        col1, col2, col3 = st.columns(3)
        col1.metric("Mastered", report.mastery.mastered)
        col2.metric("Learning", report.mastery.learning)
        col3.metric("Need Practice", report.mastery.weak)

    col1, col2 = st.columns(2)
    with col1:
        if st.button(f"Start New {'Exam' if report.mode == QuizMode.TEST else 'Quiz'}", type="primary"):
            quiz.reset()
            st.rerun()
    with col2:
        if st.button("Review Answers"):
            quiz.review_answers()
            st.rerun()


if quiz.state == SessionState.SETUP:
    render_setup()
elif quiz.state == SessionState.COMPLETE and not quiz.reviewing:
    render_results()
else:
    render_question()
