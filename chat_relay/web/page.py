"""Browser chat page served at ``/``.

The inline script is the browser side of the streaming protocol: it reads the
``/chat/stream`` body incrementally, keeps the unterminated tail of the NDJSON
stream in a buffer, and appends tokens to one assistant message. The thinking
placeholder is tagged with ``data-placeholder`` rather than recognized by its text.
"""

INDEX_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>NEMO</title>
<style>
  :root { --bg: #0f1115; --panel: #181b22; --text: #e6e6e6; --muted: #8a8f98; --accent: #76b900; --border: #2a2e37; }
  * { box-sizing: border-box; }
  body { margin: 0; font-family: system-ui, sans-serif; background: var(--bg); color: var(--text); }
  main { max-width: 760px; margin: 0 auto; height: 100vh; display: flex; flex-direction: column; padding: 1rem; }
  #messages { flex: 1; overflow-y: auto; display: flex; flex-direction: column; gap: 0.5rem; padding-bottom: 1rem; }
  .msg { padding: 0.6rem 0.8rem; border-radius: 8px; white-space: pre-wrap; max-width: 85%; line-height: 1.4; }
  .msg.user { align-self: flex-end; background: #243042; }
  .msg.assistant { align-self: flex-start; background: var(--panel); border: 1px solid var(--border); }
  .msg[data-placeholder="true"] { color: var(--muted); font-style: italic; }
  form { display: flex; gap: 0.5rem; align-items: center; }
  #message { flex: 1; padding: 0.6rem; border-radius: 6px; border: 1px solid var(--border); background: var(--panel); color: var(--text); }
  button, .file-btn { padding: 0.55rem 0.9rem; border-radius: 6px; border: 1px solid var(--border); background: var(--panel); color: var(--text); cursor: pointer; }
  button[type=submit] { background: var(--accent); color: #111; border: none; }
  #file-name { color: var(--muted); font-size: 0.85rem; max-width: 140px; overflow: hidden; text-overflow: ellipsis; white-space: nowrap; }
  #clear-file { display: none; padding: 0.2rem 0.5rem; }
</style>
</head>
<body>
<main>
  <div id="messages"></div>
  <form id="composer">
    <input id="message" autocomplete="off" placeholder="Message NEMO">
    <label class="file-btn">Attach<input id="file" type="file" hidden></label>
    <span id="file-name"></span>
    <button type="button" id="clear-file" title="Remove file">&times;</button>
    <button type="submit">Send</button>
  </form>
</main>
<script>
const messagesEl = document.getElementById('messages');
const composer = document.getElementById('composer');
const messageInput = document.getElementById('message');
const fileInput = document.getElementById('file');
const fileNameEl = document.getElementById('file-name');
const clearFileBtn = document.getElementById('clear-file');
const PLACEHOLDER_TEXT = '\\u2026NEMO is thinking...';

function scrollToEnd() {
  messagesEl.scrollTop = messagesEl.scrollHeight;
}

function appendMessage(text, who, placeholder) {
  const div = document.createElement('div');
  div.className = 'msg ' + (who === 'user' ? 'user' : 'assistant');
  if (placeholder) div.dataset.placeholder = 'true';
  div.textContent = text;
  messagesEl.appendChild(div);
  scrollToEnd();
  return div;
}

function removePlaceholder() {
  messagesEl.querySelectorAll('.msg[data-placeholder="true"]').forEach((el) => el.remove());
}

function setFileName(name) {
  fileNameEl.textContent = name || 'No file chosen';
  fileNameEl.title = name || '';
  clearFileBtn.style.display = name ? 'inline-flex' : 'none';
}
setFileName(null);

fileInput.addEventListener('change', () => {
  const file = fileInput.files[0];
  setFileName(file ? file.name : null);
});
clearFileBtn.addEventListener('click', () => {
  fileInput.value = '';
  setFileName(null);
});

// One exchange's assistant message; created when the first record arrives.
function assistantSurface(state) {
  if (!state.el) {
    removePlaceholder();
    state.el = appendMessage('', 'assistant', false);
  }
  return state.el;
}

function handleRecord(obj, state) {
  if (typeof obj.token === 'string') {
    assistantSurface(state).textContent += obj.token;
    scrollToEnd();
  } else if (obj.done === true) {
    assistantSurface(state);
  } else if (typeof obj.error === 'string') {
    assistantSurface(state).textContent += '\\n\\nError: ' + obj.error;
    scrollToEnd();
  }
}

function parseLine(line, state) {
  if (!line.trim()) return;
  try {
    handleRecord(JSON.parse(line), state);
  } catch (e) {
    console.warn('NDJSON parse error', e, line);
  }
}

async function streamMessage(messageText) {
  const resp = await fetch('/chat/stream', {
    method: 'POST',
    headers: { 'Content-Type': 'application/json' },
    body: JSON.stringify({ message: messageText }),
  });
  if (!resp.ok) {
    const text = await resp.text();
    throw new Error('Stream request failed: ' + text);
  }

  const state = { el: null };
  const reader = resp.body.getReader();
  const decoder = new TextDecoder();
  let buffer = '';

  while (true) {
    const { value, done } = await reader.read();
    if (done) break;
    buffer += decoder.decode(value, { stream: true });
    const parts = buffer.split('\\n');
    buffer = parts.pop();
    for (const line of parts) parseLine(line, state);
  }
  buffer += decoder.decode();
  parseLine(buffer, state);

  const el = assistantSurface(state);
  if (!el.textContent) el.textContent = '(no response)';
}

async function sendBuffered(text, file) {
  const fd = new FormData();
  fd.append('message', text);
  fd.append('file', file);
  try {
    const resp = await fetch('/chat', { method: 'POST', body: fd });
    const data = await resp.json();
    removePlaceholder();
    if (data.error) appendMessage('Error: ' + data.error, 'assistant', false);
    else appendMessage(data.reply || '(no response)', 'assistant', false);
  } catch (err) {
    removePlaceholder();
    appendMessage('Network/server error: ' + err.message, 'assistant', false);
    console.error(err);
  }
}

composer.addEventListener('submit', async (e) => {
  e.preventDefault();
  const text = messageInput.value.trim();
  const file = fileInput.files[0];
  if (!text && !file) return;

  if (text) appendMessage(text, 'user', false);
  if (file) appendMessage('Attached file: ' + file.name, 'user', false);
  messageInput.value = '';
  fileInput.value = '';
  setFileName(null);
  appendMessage(PLACEHOLDER_TEXT, 'assistant', true);

  if (file) {
    await sendBuffered(text, file);
    return;
  }
  try {
    await streamMessage(text);
  } catch (err) {
    removePlaceholder();
    appendMessage('Error streaming response: ' + err.message, 'assistant', false);
    console.error(err);
  }
});
</script>
</body>
</html>
"""
